"""
Metadata registry for DDD Auto Generator.

The registry is the single owner of every aggregate descriptor, inferred
relation, synthesized junction table and collected enum. It is populated
sequentially during preparation and then frozen into a ``RegistrySnapshot``
that generator workers read concurrently without locking.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from ..exceptions import AggregateNotFoundError, IngestionError
from .models import (
    AggregateDescriptor,
    EnumDescriptor,
    JunctionTable,
    RelationRecord,
)
from .naming import to_pascal_case


logger = logging.getLogger(__name__)


def _collect_enums(aggregates: List[AggregateDescriptor]) -> List[EnumDescriptor]:
    """
    One enum per enum-annotated field.

    Raises:
        IngestionError: If two (aggregate, field) pairs produce the same enum name
    """
    enums: Dict[str, EnumDescriptor] = {}
    for aggregate in aggregates:
        for f in aggregate.enum_fields:
            name = f"{aggregate.name}{to_pascal_case(f.name)}"
            existing = enums.get(name)
            if existing is not None:
                raise IngestionError(
                    f"Enum name '{name}' is produced by both {existing.owning_aggregate}.{existing.owning_field} "
                    f"and {aggregate.name}.{f.name}",
                    file_path=aggregate.source_path,
                    aggregate=aggregate.name,
                    field=f.name,
                    suggestions=["Rename one of the two fields so their enum names differ"],
                )
            enums[name] = EnumDescriptor(
                name=name,
                owning_aggregate=aggregate.name,
                owning_field=f.name,
                values=tuple(dict.fromkeys(f.annotations.enum_values)),
            )
    return list(enums.values())


class Registry:
    """
    Name-keyed store of aggregates plus the derived relation data.

    Not thread-safe; only the preparation phase writes to it.
    """

    def __init__(self):
        self._aggregates: Dict[str, AggregateDescriptor] = {}
        self._relations: List[RelationRecord] = []
        self._junctions: List[JunctionTable] = []
        self._enums: List[EnumDescriptor] = []

    def register(self, aggregate: AggregateDescriptor) -> None:
        """Register an aggregate. Re-registering a name replaces the earlier entry."""
        if aggregate.name in self._aggregates:
            logger.warning(f"Aggregate '{aggregate.name}' registered twice, keeping the last declaration")
        self._aggregates[aggregate.name] = aggregate

    def get(self, name: str) -> AggregateDescriptor:
        """
        Get an aggregate by name.

        Raises:
            AggregateNotFoundError: If no aggregate with that name exists
        """
        try:
            return self._aggregates[name]
        except KeyError:
            raise AggregateNotFoundError(name) from None

    def get_all(self) -> List[AggregateDescriptor]:
        """All aggregates, sorted by name."""
        return [self._aggregates[name] for name in sorted(self._aggregates)]

    def exists(self, name: str) -> bool:
        return name in self._aggregates

    def __len__(self) -> int:
        return len(self._aggregates)

    def add_relation(self, relation: RelationRecord) -> None:
        self._relations.append(relation)

    def get_relations(self) -> List[RelationRecord]:
        return list(self._relations)

    def get_relations_of(self, name: str) -> List[RelationRecord]:
        """Relations whose source is the given aggregate."""
        return [r for r in self._relations if r.source == name]

    def add_junction(self, junction: JunctionTable) -> None:
        self._junctions.append(junction)

    def get_junctions(self) -> List[JunctionTable]:
        return list(self._junctions)

    def collect_enums(self) -> List[EnumDescriptor]:
        """
        Scan every aggregate for enum-bearing fields.

        Must run after all aggregates are registered. Running it again
        replaces the previous result.

        Raises:
            IngestionError: If two enum-bearing fields map to the same enum name
        """
        self._enums = _collect_enums(self.get_all())
        logger.debug(f"Collected {len(self._enums)} enum(s)")
        return list(self._enums)

    def get_enums(self) -> List[EnumDescriptor]:
        return list(self._enums)

    def snapshot(self) -> "RegistrySnapshot":
        """Freeze the current state for concurrent readers."""
        return RegistrySnapshot(
            aggregates=MappingProxyType(dict(self._aggregates)),
            relations=tuple(self._relations),
            junctions=tuple(self._junctions),
            enums=tuple(self._enums),
        )


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of a populated registry, shared by every generator."""

    aggregates: Mapping[str, AggregateDescriptor]
    relations: Tuple[RelationRecord, ...] = ()
    junctions: Tuple[JunctionTable, ...] = ()
    enums: Tuple[EnumDescriptor, ...] = ()

    def get(self, name: str) -> AggregateDescriptor:
        try:
            return self.aggregates[name]
        except KeyError:
            raise AggregateNotFoundError(name) from None

    def find(self, name: str) -> Optional[AggregateDescriptor]:
        return self.aggregates.get(name)

    def get_all(self) -> List[AggregateDescriptor]:
        return [self.aggregates[name] for name in sorted(self.aggregates)]

    def exists(self, name: str) -> bool:
        return name in self.aggregates

    def get_relations_of(self, name: str) -> List[RelationRecord]:
        return [r for r in self.relations if r.source == name]

    def get_junctions_of(self, name: str) -> List[JunctionTable]:
        return [j for j in self.junctions if j.is_pure and j.involves(name)]

    def get_enums_of(self, name: str) -> List[EnumDescriptor]:
        return [e for e in self.enums if e.owning_aggregate == name]

    def get_enum_for(self, aggregate_name: str, field_name: str) -> Optional[EnumDescriptor]:
        for enum in self.enums:
            if enum.owning_aggregate == aggregate_name and enum.owning_field == field_name:
                return enum
        return None

    def aggregates_in(self, source_path: str) -> List[AggregateDescriptor]:
        """Aggregates declared in one source file, sorted by name."""
        return [a for a in self.get_all() if a.source_path == source_path]
