# canvasreg/registry/__init__.py
"""
Canvas name registry.

The registry is the authoritative record of issued assets. Each name is
registered once, gets the next sequential identifier, and can be looked
up by identifier or by name.

Example:
    registry = Registry(registry_dir="/path/to/registry")  # or Registry() in memory
    token_id = registry.register("0xowner", "QmHash")
    registry.resolve_content(token_id)  # "ipfs://QmHash"
"""

from .content import CONTENT_PREFIX, ContentResolver, content_pointer
from .metadata import TokenMetadata
from .registry import DISPLAY_NAME, DISPLAY_SYMBOL, Entry, Registry, RegistryStorage

__all__ = [
    "Registry",
    "RegistryStorage",
    "Entry",
    "TokenMetadata",
    "ContentResolver",
    "content_pointer",
    "CONTENT_PREFIX",
    "DISPLAY_NAME",
    "DISPLAY_SYMBOL",
]
