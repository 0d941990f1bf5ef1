"""In-memory secondary index over a job's cache records."""

from typing import Dict, Iterable, List, Optional

from models.cache import ProcessCache


class CacheIndex:
    """Key -> records (one-to-many) and id -> record (one-to-one).

    Owned by exactly one job. Rebuilt from storage on load and extended on
    every write; it never becomes a source of truth of its own. Records
    sharing a key keep the order they were added in, so the first entry of a
    bucket is the first one written.
    """

    def __init__(self):
        self.by_key: Dict[str, List[ProcessCache]] = {}
        self.by_id: Dict[int, ProcessCache] = {}

    def clear(self) -> None:
        self.by_key = {}
        self.by_id = {}

    def add(self, record: ProcessCache) -> None:
        """Append a record to its key bucket and register its id."""
        self.by_key.setdefault(record.key, []).append(record)
        self.by_id[record.id] = record

    def rebuild(self, records: Iterable[ProcessCache]) -> None:
        """Replace the index contents with records, in the order given."""
        self.clear()
        for record in records:
            self.add(record)

    def get(self, key: str) -> List[ProcessCache]:
        return list(self.by_key.get(key, []))

    def first(self, key: str) -> Optional[ProcessCache]:
        bucket = self.by_key.get(key)
        return bucket[0] if bucket else None

    def get_by_id(self, record_id: int) -> Optional[ProcessCache]:
        return self.by_id.get(record_id)

    def keys(self) -> List[str]:
        return list(self.by_key.keys())

    def records(self) -> List[ProcessCache]:
        """All indexed records in id order."""
        return [self.by_id[record_id] for record_id in sorted(self.by_id)]

    def __len__(self) -> int:
        return len(self.by_id)

    def __contains__(self, key: object) -> bool:
        return key in self.by_key

    def __repr__(self) -> str:
        return f"CacheIndex(keys={len(self.by_key)}, records={len(self.by_id)})"
