"""
Deduplicating in-memory entity store with merge-on-write semantics.
"""

import logging
from collections.abc import Mapping
from dataclasses import fields
from typing import Any

from .models import RECORD_TYPES, Entity, EntityKind, field_names, is_unknown

logger = logging.getLogger(__name__)


class EntityStore:
    """Mapping from (kind, id) to the richest record seen so far.

    Records are never removed. An upsert only fills fields that are still
    unknown (None or empty), so a later, poorer view of an entity cannot
    erase what an earlier view discovered.
    """

    def __init__(self):
        self._records: dict[tuple[EntityKind, str], Entity] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: tuple[EntityKind, str]) -> bool:
        kind, entity_id = key
        return (EntityKind(kind), str(entity_id)) in self._records

    def get(self, kind: EntityKind, entity_id: str) -> Entity | None:
        return self._records.get((EntityKind(kind), str(entity_id)))

    def records(self, kind: EntityKind) -> dict[str, Entity]:
        """All records of one kind, keyed by id, in discovery order."""
        kind = EntityKind(kind)
        return {entity_id: record for (k, entity_id), record in self._records.items() if k == kind}

    def upsert(self, kind: EntityKind, entity_id: str, data: Mapping[str, Any] | Entity) -> Entity:
        """
        Insert a record or merge new information into the existing one.

        Args:
            kind: Entity kind
            entity_id: Source-assigned id
            data: Field mapping or a record of the matching type

        Returns:
            The stored (merged) record

        Raises:
            TypeError: If the record type or a field name does not match the kind
        """
        kind = EntityKind(kind)
        entity_id = str(entity_id)
        record_type = RECORD_TYPES[kind]

        if isinstance(data, Mapping):
            incoming = dict(data)
        elif isinstance(data, record_type):
            incoming = {f.name: getattr(data, f.name) for f in fields(data)}
        else:
            raise TypeError(f"Cannot upsert {type(data).__name__} as {kind}")

        unknown = set(incoming) - field_names(record_type)
        if unknown:
            raise TypeError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")

        incoming_id = incoming.pop("id", None)
        if not is_unknown(incoming_id) and str(incoming_id) != entity_id:
            raise TypeError(f"Record id {incoming_id} does not match {kind} id {entity_id}")

        key = (kind, entity_id)
        existing = self._records.get(key)
        if existing is None:
            record = record_type(id=entity_id, **incoming)
            self._records[key] = record
            return record

        filled = []
        for name, value in incoming.items():
            if is_unknown(value) or not is_unknown(getattr(existing, name)):
                continue
            setattr(existing, name, value)
            filled.append(name)

        if filled:
            logger.debug(f"Merged {kind} {entity_id}: filled {', '.join(filled)}")
        return existing
