"""
Relationship analysis domain logic for DDD Auto Generator.

This module infers the associations between registered aggregates from field
shape and annotations, synthesizes junction tables for many-to-many pairs
and checks that every association points at an aggregate that exists.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..constants import FieldNames
from ..exceptions import RelationValidationError
from .models import (
    AggregateDescriptor,
    JunctionKind,
    JunctionTable,
    RelationKind,
    RelationRecord,
)
from .naming import foreign_key_column, junction_table_name, to_lower_snake
from .registry import Registry


logger = logging.getLogger(__name__)


class RelationshipAnalyzer:
    """
    Analyzes aggregate declarations and records their relations.

    The analyzer writes into the registry it was given: relation records from
    ``analyze_relations`` and junction tables from ``generate_junction_tables``.
    ``validate_relations`` only reads.
    """

    def __init__(self, registry: Registry, external_refs: Optional[Iterable[str]] = None):
        """
        Initialize relationship analyzer.

        Args:
            registry: Registry holding every declared aggregate
            external_refs: Reference targets that live outside this model and
                are not required to be registered
        """
        self.registry = registry
        self.external_refs: Set[str] = set(external_refs or ())
        self._aggregate_ref_errors: List[RelationValidationError] = []

    def analyze_relations(self) -> List[RelationRecord]:
        """
        Record every relation declared by fields and aggregate-level refs.

        Returns:
            The relation records added to the registry
        """
        self._aggregate_ref_errors = []
        recorded: List[RelationRecord] = []

        for aggregate in self.registry.get_all():
            recorded.extend(self._analyze_fields(aggregate))
            recorded.extend(self._analyze_aggregate_refs(aggregate))

        for relation in recorded:
            self.registry.add_relation(relation)

        logger.debug(f"Recorded {len(recorded)} relation(s)")
        return recorded

    def _analyze_fields(self, aggregate: AggregateDescriptor) -> List[RelationRecord]:
        """Analyze field-level relations."""
        relations = []

        for f in aggregate.fields:
            kind = RelationKind.derive(f)
            if kind is None:
                if f.annotations.outward_ref is not None:
                    logger.warning(
                        f"{aggregate.name}.{f.name}: reference annotation on non-basic type "
                        f"'{f.semantic_type}' ignored"
                    )
                continue

            if kind == RelationKind.REF:
                target = f.annotations.outward_ref
                is_owner = False
            else:
                target = f.semantic_type
                is_owner = True

            relations.append(RelationRecord(
                source=aggregate.name,
                target=target,
                kind=kind,
                field=f,
                is_owner=is_owner,
            ))

        return relations

    def _analyze_aggregate_refs(self, aggregate: AggregateDescriptor) -> List[RelationRecord]:
        """Analyze aggregate-level refs, recording each mutual pair once."""
        relations = []

        for target_name in aggregate.annotations.outward_refs:
            if not self.registry.exists(target_name):
                self._aggregate_ref_errors.append(RelationValidationError(
                    f"Aggregate '{aggregate.name}' refers to unknown aggregate '{target_name}'",
                    source_aggregate=aggregate.name,
                    target_aggregate=target_name,
                ))
                continue

            target = self.registry.get(target_name)
            if aggregate.name not in target.annotations.outward_refs:
                logger.debug(f"{aggregate.name} -> {target_name} is one-directional, no junction")
                continue

            if aggregate.annotations.is_junction_aggregate or target.annotations.is_junction_aggregate:
                continue

            # The lexicographically smaller side owns the pair
            if aggregate.name > target_name:
                continue

            relations.append(RelationRecord(
                source=aggregate.name,
                target=target_name,
                kind=RelationKind.MANY_TO_MANY,
                is_owner=True,
            ))

        return relations

    def generate_junction_tables(self) -> List[JunctionTable]:
        """
        Synthesize junction tables for many-to-many pairs and business aggregates.

        Returns:
            The junction tables added to the registry, one per unordered pair
        """
        junctions: Dict[Tuple[str, str], JunctionTable] = {}

        for relation in self.registry.get_relations():
            if relation.kind != RelationKind.MANY_TO_MANY:
                continue
            left, right = sorted((relation.source, relation.target))
            if (left, right) in junctions:
                continue
            junctions[(left, right)] = self._pure_junction(left, right)

        for aggregate in self.registry.get_all():
            junction = self._business_junction(aggregate)
            if junction is not None:
                key = (junction.left_aggregate, junction.right_aggregate)
                if key in junctions and junctions[key].is_pure:
                    logger.warning(
                        f"{aggregate.name} materializes {key[0]}/{key[1]}; "
                        f"dropping the pure junction '{junctions[key].table_name}'"
                    )
                junctions[key] = junction

        added = [junctions[key] for key in sorted(junctions)]
        for junction in added:
            self.registry.add_junction(junction)
        return added

    def _id_field_name(self, aggregate_name: str) -> str:
        id_field = self.registry.get(aggregate_name).id_field
        return id_field.persisted_name if id_field else FieldNames.DEFAULT_ID_FIELD

    def _pure_junction(self, left: str, right: str) -> JunctionTable:
        right_column = foreign_key_column(right)
        if left == right:
            right_column = foreign_key_column(right, prefix="related_")

        return JunctionTable(
            table_name=junction_table_name(left, right),
            left_aggregate=left,
            right_aggregate=right,
            left_column=foreign_key_column(left),
            right_column=right_column,
            left_id_field=self._id_field_name(left),
            right_id_field=self._id_field_name(right),
            kind=JunctionKind.PURE_ASSOCIATION,
        )

    def _business_junction(self, aggregate: AggregateDescriptor) -> Optional[JunctionTable]:
        """A flagged aggregate joining exactly two registered aggregates."""
        if not aggregate.annotations.is_junction_aggregate:
            return None

        targets = sorted({
            name for name in aggregate.annotations.outward_refs
            if name != aggregate.name and self.registry.exists(name)
        })
        if len(targets) != 2:
            logger.debug(f"{aggregate.name} is flagged many-to-many but joins {len(targets)} aggregate(s)")
            return None

        left, right = targets
        return JunctionTable(
            table_name=to_lower_snake(aggregate.name),
            left_aggregate=left,
            right_aggregate=right,
            left_column=foreign_key_column(left),
            right_column=foreign_key_column(right),
            left_id_field=self._id_field_name(left),
            right_id_field=self._id_field_name(right),
            kind=JunctionKind.BUSINESS_AGGREGATE,
        )

    def validate_relations(self) -> List[RelationValidationError]:
        """
        Check that every relation target is registered.

        Reference targets listed as external are exempt.

        Returns:
            All validation errors, empty when the model is consistent
        """
        errors = list(self._aggregate_ref_errors)

        for relation in self.registry.get_relations():
            if self.registry.exists(relation.target):
                continue
            if relation.kind == RelationKind.REF and relation.target in self.external_refs:
                logger.debug(f"{relation.source}.{relation.field_name} -> {relation.target} is external")
                continue
            errors.append(RelationValidationError(
                f"{relation.source}.{relation.field_name} refers to unknown aggregate '{relation.target}'",
                source_aggregate=relation.source,
                target_aggregate=relation.target,
                field=relation.field_name,
            ))

        return errors
