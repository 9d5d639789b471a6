"""
Inventory Configuration

Environment variables and limits for the inventory module.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class InventoryConfig:
    """Inventory configuration settings."""

    # Spreadsheet uploads
    MAX_UPLOAD_ROWS: int = 10000
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Listing
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 100

    # Spreadsheet export
    EXPORT_MAX_ROWS: int = 50000

    # Keep the demo DeLorean in the catalogue on start-up
    SEED_DEMO: bool = True

    @classmethod
    def from_env(cls) -> 'InventoryConfig':
        """Load configuration from environment variables."""
        return cls(
            MAX_UPLOAD_ROWS=int(os.environ.get('INVENTORY_MAX_UPLOAD_ROWS', '10000')),
            MAX_UPLOAD_BYTES=int(os.environ.get('INVENTORY_MAX_UPLOAD_MB', '10')) * 1024 * 1024,
            DEFAULT_PAGE_SIZE=int(os.environ.get('INVENTORY_DEFAULT_PAGE_SIZE', '50')),
            MAX_PAGE_SIZE=int(os.environ.get('INVENTORY_MAX_PAGE_SIZE', '100')),
            EXPORT_MAX_ROWS=int(os.environ.get('INVENTORY_EXPORT_MAX_ROWS', '50000')),
            SEED_DEMO=os.environ.get('INVENTORY_SEED_DEMO', 'true').lower() == 'true',
        )


# Default configuration instance
_default_config: Optional[InventoryConfig] = None


def get_config() -> InventoryConfig:
    """Get the default configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = InventoryConfig.from_env()
    return _default_config


def reset_config():
    """Reset configuration (for testing)."""
    global _default_config
    _default_config = None
