"""
Entity trait generator.

Appends (or refreshes) a generated section at the end of the module that
declares the aggregates. The section defines the identity helpers plus the
soft-delete, optimistic-lock and audit helpers the aggregate's fields allow,
and binds them onto the aggregate classes.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import ArtifactKinds, FieldNames, Splice
from ..domain.models import AggregateDescriptor, Artifact
from ..domain.naming import to_snake_case
from ..domain.registry import RegistrySnapshot
from .base import ArtifactGenerator
from .splice import splice_generated_block


logger = logging.getLogger(__name__)


def _field_named(aggregate: AggregateDescriptor, names) -> Optional[str]:
    for f in aggregate.fields:
        if to_snake_case(f.name) in names:
            return f.name
    return None


def trait_context(aggregate: AggregateDescriptor) -> Dict[str, Any]:
    """Attribute names each trait helper of one aggregate reads and writes."""
    id_field = aggregate.id_field
    traits = aggregate.base_entity_traits
    return {
        "name": aggregate.name,
        "prefix": to_snake_case(aggregate.name),
        "id_attr": id_field.name if id_field else None,
        "id_is_int": bool(id_field) and id_field.semantic_type == FieldNames.IDENTITY_TYPE,
        "deleted_at": _field_named(aggregate, FieldNames.SOFT_DELETE_NAMES) if traits.has_soft_delete else None,
        "version": _field_named(aggregate, FieldNames.OPTIMISTIC_LOCK_NAMES) if traits.has_optimistic_lock else None,
        "created_at": _field_named(aggregate, {"created_at"}),
        "updated_at": _field_named(aggregate, {"updated_at"}),
        "created_by": _field_named(aggregate, {"created_by"}),
        "updated_by": _field_named(aggregate, {"updated_by"}),
        "has_audit": traits.has_audit,
    }


class EntityTraitsGenerator(ArtifactGenerator):
    """Splices trait helpers into the aggregate's own source file."""

    kind = ArtifactKinds.ENTITY_TRAITS
    in_place = True
    template_name = "entity_traits.py.j2"

    def render_block(self, aggregates: List[AggregateDescriptor]) -> str:
        items = [trait_context(a) for a in aggregates]
        needs_clock = any(item["deleted_at"] or item["has_audit"] for item in items)
        return self.render(self.template_name, {
            "marker": Splice.MARKER,
            "aggregates": items,
            "needs_clock": needs_clock,
        })

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        if aggregate is None or aggregate.source_path is None:
            return []

        source_path = aggregate.source_path
        # One block covers every aggregate of the file so each task renders the same bytes
        block = self.render_block(snapshot.aggregates_in(source_path))
        original = Path(source_path).read_text(encoding="utf-8")
        content = splice_generated_block(original, block, source_path)

        return [Artifact(path=source_path, content=content, kind=self.kind, aggregate=aggregate.name)]
