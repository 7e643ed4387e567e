# canvasreg/registry/content.py
"""
Content pointers for registered names.

A content pointer is the name prefixed with the content-addressing
scheme, so a name that is itself an IPFS hash resolves to its gateway
URI: "Qm..." -> "ipfs://Qm...".
"""

from ..errors import InvalidNameError

CONTENT_PREFIX = "ipfs://"


def content_pointer(name: str, prefix: str = CONTENT_PREFIX) -> str:
    """
    Derive the content pointer for a name.

    Args:
        name: Registered name (non-empty)
        prefix: Scheme prefix for the content namespace

    Returns:
        prefix + name
    """
    if not isinstance(name, str) or not name:
        raise InvalidNameError(f"Name must be a non-empty string, got {name!r}")
    return prefix + name


class ContentResolver:
    """Resolves names to content pointers under a fixed prefix."""

    def __init__(self, prefix: str = CONTENT_PREFIX):
        self.prefix = prefix

    def resolve(self, name: str) -> str:
        return content_pointer(name, self.prefix)

    def __call__(self, name: str) -> str:
        return self.resolve(name)

    def __repr__(self) -> str:
        return f"ContentResolver(prefix={self.prefix!r})"
