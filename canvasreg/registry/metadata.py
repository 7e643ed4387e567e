# canvasreg/registry/metadata.py
"""
Marketplace metadata for registered entries.

Marketplaces fetch a small JSON document per token with a display name,
a description and an image URI. For canvas entries the image is the
entry's content pointer.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class TokenMetadata:
    name: str
    description: str
    image: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenMetadata":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            image=data["image"],
        )

    @classmethod
    def for_entry(cls, entry, description: str = "") -> "TokenMetadata":
        return cls(name=entry.name, description=description, image=entry.content_pointer)
