"""
Core module - Contains configuration, logging, errors, crypto and memory components.
"""

from vaultstore.core.config import VaultStoreConfig
from vaultstore.core.logging import (
    SecureLogFilter,
    configure_audit_log,
    configure_root_logger,
    get_secure_logger,
)

__all__ = [
    "VaultStoreConfig",
    "SecureLogFilter",
    "configure_audit_log",
    "configure_root_logger",
    "get_secure_logger",
]
