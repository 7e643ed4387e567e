# canvasreg/registry/registry.py
"""
Name registry for canvas assets.

Every asset is registered once under a unique name and receives the next
sequential identifier (starting at 1). Lookups work in both directions:
identifier -> content pointer, name -> identifier.

The registry is append-only. Entries are never renamed, transferred or
deleted.

State lives in a RegistryStorage so that an upgradeable proxy can keep
the same storage while swapping the Registry implementation in front of it.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ..errors import DuplicateNameError, InvalidNameError, NotFoundError
from .content import ContentResolver
from .metadata import TokenMetadata

logger = logging.getLogger(__name__)

DISPLAY_NAME = "Canvas"
DISPLAY_SYMBOL = "CS"


@dataclass(frozen=True)
class Entry:
    """
    A registered asset.

    Attributes:
        name: Unique name of the asset
        identifier: Sequential identifier, starting at 1
        owner: Account that registered the asset
        content_pointer: Retrievable pointer derived from the name
        created_at: Timestamp of registration
    """
    name: str
    identifier: int
    owner: str
    content_pointer: str
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "identifier": self.identifier,
            "owner": self.owner,
            "content_pointer": self.content_pointer,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        return cls(
            name=data["name"],
            identifier=int(data["identifier"]),
            owner=data["owner"],
            content_pointer=data["content_pointer"],
            created_at=data.get("created_at", time.time()),
        )


class RegistryStorage:
    """
    Indexes and counter backing a Registry.

    Structure on disk (when storage_dir is given):
        storage_dir/
            registry.json     # All entries plus the identifier counter

    All access goes through `lock`. Writers hold it for the whole
    check-and-insert; readers hold it so they never see one index
    updated without the other.
    """

    def __init__(self, storage_dir: Path | str = None):
        self.storage_dir = Path(storage_dir) if storage_dir else None
        self.lock = threading.RLock()
        self.by_name: Dict[str, int] = {}
        self.by_id: Dict[int, Entry] = {}
        self.last_id = 0
        if self.storage_dir is not None:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    @property
    def persistent(self) -> bool:
        return self.storage_dir is not None

    def _index_path(self) -> Path:
        return self.storage_dir / "registry.json"

    def _load(self):
        """Load entries from disk and rebuild both indexes."""
        index_path = self._index_path()
        if not index_path.exists():
            return
        with open(index_path) as f:
            data = json.load(f)

        entries = [Entry.from_dict(e) for e in data.get("entries", [])]
        entries.sort(key=lambda e: e.identifier)
        for expected, entry in enumerate(entries, start=1):
            if entry.identifier != expected:
                raise ValueError(
                    f"Corrupt registry index {index_path}: "
                    f"expected identifier {expected}, found {entry.identifier}"
                )
            if entry.name in self.by_name:
                raise ValueError(f"Corrupt registry index {index_path}: duplicate name {entry.name!r}")
            self.by_name[entry.name] = entry.identifier
            self.by_id[entry.identifier] = entry

        last_id = data.get("last_id", len(entries))
        if last_id != len(entries):
            raise ValueError(
                f"Corrupt registry index {index_path}: "
                f"last_id {last_id} does not match {len(entries)} entries"
            )
        self.last_id = last_id
        logger.debug(f"Loaded {len(entries)} entries from {index_path}")

    def save(self):
        """Write all entries to disk. No-op for in-memory storage."""
        if self.storage_dir is None:
            return
        data = {
            "version": "1.0",
            "last_id": self.last_id,
            "entries": [self.by_id[i].to_dict() for i in sorted(self.by_id)],
        }
        tmp_path = self._index_path().with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self._index_path())

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the current state, for comparisons and debugging."""
        with self.lock:
            return {
                "last_id": self.last_id,
                "by_name": dict(self.by_name),
                "by_id": dict(self.by_id),
            }


class Registry:
    """
    The canvas name registry.

    Usage:
        registry = Registry()
        token_id = registry.register("0xowner", "QmHash")
        registry.resolve_content(token_id)   # "ipfs://QmHash"
        registry.identifier_of("QmHash")     # 1
    """

    def __init__(
        self,
        storage: RegistryStorage = None,
        registry_dir: Path | str = None,
        resolver: ContentResolver = None,
    ):
        """
        Initialize the registry.

        Args:
            storage: Existing storage to operate on (e.g. owned by a proxy)
            registry_dir: Directory for a new file-backed storage
            resolver: Content pointer resolver (defaults to ipfs://)
        """
        if storage is not None and registry_dir is not None:
            raise ValueError("Pass either storage or registry_dir, not both")
        self.storage = storage if storage is not None else RegistryStorage(registry_dir)
        self.resolver = resolver or ContentResolver()

    # Metadata

    def display_name(self) -> str:
        return DISPLAY_NAME

    def display_symbol(self) -> str:
        return DISPLAY_SYMBOL

    # Mutation

    def register(self, owner: str, name: str) -> int:
        """
        Register a name and assign it the next identifier.

        Args:
            owner: Account registering the asset
            name: Unique, non-empty name

        Returns:
            The new identifier

        Raises:
            InvalidNameError: name is empty or not a string
            DuplicateNameError: name is already registered
        """
        if not isinstance(name, str) or not name:
            raise InvalidNameError(f"Name must be a non-empty string, got {name!r}")
        if not owner:
            raise ValueError("Owner is required")

        pointer = self.resolver.resolve(name)
        storage = self.storage

        with storage.lock:
            if name in storage.by_name:
                raise DuplicateNameError(name)

            identifier = storage.last_id + 1
            entry = Entry(
                name=name,
                identifier=identifier,
                owner=owner,
                content_pointer=pointer,
            )

            storage.by_id[identifier] = entry
            storage.by_name[name] = identifier
            storage.last_id = identifier
            try:
                storage.save()
            except Exception:
                del storage.by_id[identifier]
                del storage.by_name[name]
                storage.last_id = identifier - 1
                raise

        logger.info(f"Registered {name!r} as #{identifier} for {owner}")
        return identifier

    # Queries

    def get(self, identifier: int) -> Entry:
        """Get the entry for an identifier."""
        with self.storage.lock:
            entry = self.storage.by_id.get(identifier)
        if entry is None:
            raise NotFoundError(identifier)
        return entry

    def find(self, name: str) -> Optional[Entry]:
        """Get the entry for a name, or None if unused."""
        with self.storage.lock:
            identifier = self.storage.by_name.get(name)
            if identifier is None:
                return None
            return self.storage.by_id[identifier]

    def resolve_content(self, identifier: int) -> str:
        """Content pointer of the entry with this identifier."""
        return self.get(identifier).content_pointer

    def identifier_of(self, name: str) -> int:
        """Identifier assigned to a registered name."""
        with self.storage.lock:
            identifier = self.storage.by_name.get(name)
        if identifier is None:
            raise NotFoundError(name)
        return identifier

    def owner_of(self, identifier: int) -> str:
        """Account that registered the entry with this identifier."""
        return self.get(identifier).owner

    def token_metadata(self, identifier: int, description: str = "") -> Dict[str, Any]:
        """Marketplace metadata document for an entry."""
        entry = self.get(identifier)
        return TokenMetadata.for_entry(entry, description).to_dict()

    def total_supply(self) -> int:
        with self.storage.lock:
            return self.storage.last_id

    def list(self) -> List[Entry]:
        """All entries in identifier order."""
        with self.storage.lock:
            return [self.storage.by_id[i] for i in sorted(self.storage.by_id)]

    def __contains__(self, name: str) -> bool:
        with self.storage.lock:
            return name in self.storage.by_name

    def __len__(self) -> int:
        with self.storage.lock:
            return len(self.storage.by_id)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.list())
