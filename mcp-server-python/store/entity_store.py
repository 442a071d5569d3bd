"""
Per-session entity store.

Holds copies of the authoritative server records for the four lifecycle
entities. Records enter the store from a canonical fetch or from a
server-confirmed mutation response; nothing writes a requested value.
Each session (or view) owns its own store, so two stores can disagree until
each re-fetches.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel

from models.errors import create_not_found_error
from models.status import EntityKind
from schemas.entities import RECORD_MODELS

logger = logging.getLogger(__name__)


class EntityStore:
    """Typed, kind-partitioned record cache for one session."""

    def __init__(self) -> None:
        self._records: Dict[EntityKind, Dict[str, BaseModel]] = {kind: {} for kind in RECORD_MODELS}

    def _bucket(self, kind: EntityKind) -> Dict[str, BaseModel]:
        return self._records[EntityKind(kind)]

    def parse(self, kind: EntityKind, raw: Dict[str, Any]) -> BaseModel:
        """Validate a raw backend payload into the record model for ``kind``."""
        return RECORD_MODELS[EntityKind(kind)].model_validate(raw)

    def replace_all(self, kind: EntityKind, raw_records: Iterable[Dict[str, Any]]) -> List[BaseModel]:
        """Replace every record of ``kind`` with a freshly fetched canonical list."""
        parsed = [self.parse(kind, raw) for raw in raw_records]
        self._records[EntityKind(kind)] = {record.id: record for record in parsed}
        logger.debug("Loaded %d %s record(s)", len(parsed), EntityKind(kind).value)
        return parsed

    def put(self, kind: EntityKind, record: BaseModel) -> BaseModel:
        self._bucket(kind)[record.id] = record
        return record

    def get(self, kind: EntityKind, entity_id: str) -> Optional[BaseModel]:
        return self._bucket(kind).get(entity_id)

    def require(self, kind: EntityKind, entity_id: str) -> BaseModel:
        """
        Return a loaded record.

        Raises:
            MarketplaceError: NOT_FOUND if the record was never loaded or was evicted
        """
        record = self.get(kind, entity_id)
        if record is None:
            raise create_not_found_error(EntityKind(kind).value, entity_id)
        return record

    def all(self, kind: EntityKind) -> List[BaseModel]:
        return list(self._bucket(kind).values())

    def remove(self, kind: EntityKind, entity_id: str) -> Optional[BaseModel]:
        """Drop a record (deleted server-side, or stale and awaiting re-fetch)."""
        return self._bucket(kind).pop(entity_id, None)

    def apply_confirmed(self, kind: EntityKind, entity_id: str, confirmed: Dict[str, Any]) -> Optional[BaseModel]:
        """
        Merge fields the server echoed back into the local copy.

        Only keys present in ``confirmed`` change; fields the server did not
        echo keep their last fetched value. Returns None when the record is
        not loaded, since there is nothing canonical to merge into.
        """
        current = self.get(kind, entity_id)
        if current is None:
            return None
        merged = {**current.model_dump(by_alias=True), **confirmed}
        merged["_id"] = entity_id
        merged.pop("id", None)
        record = self.parse(kind, merged)
        self.put(kind, record)
        return record

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._records.values())
