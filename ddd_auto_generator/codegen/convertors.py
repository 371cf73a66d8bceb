"""Convertor generator: maps an aggregate to its persisted object and back."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from ..constants import ArtifactKinds
from ..domain.models import AggregateDescriptor, Artifact
from ..domain.registry import RegistrySnapshot
from ..domain.type_mapping import ColumnMapping, PersistenceCategory, map_field
from .base import ArtifactGenerator, module_filename


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conversion:
    """The two assignment expressions of one persisted field."""

    field_name: str
    column_name: str
    to_po: str
    to_entity: str


def _guarded(source: str, expression: str) -> str:
    return f"{expression} if {source} is not None else None"


def build_conversion(column: ColumnMapping, semantic_type: str, is_basic: bool) -> Conversion:
    """Render the to-PO and to-entity expressions of one column."""
    entity_attr = f"entity.{column.field_name}"
    po_attr = f"po.{column.column_name}"

    if column.category == PersistenceCategory.ENUM:
        to_po = f'getattr({entity_attr}, "value", {entity_attr})'
        to_entity = po_attr if is_basic else _guarded(po_attr, f"{semantic_type}({po_attr})")
    elif column.category == PersistenceCategory.VALUE_OBJECT:
        strategy = repr(column.value_object_strategy)
        to_po = f"dump_value_object({entity_attr}, {strategy})"
        to_entity = f"load_value_object({semantic_type}, {po_attr}, {strategy})"
    elif column.category == PersistenceCategory.COLLECTION:
        if is_basic:
            to_po = _guarded(entity_attr, f"list({entity_attr})")
            to_entity = _guarded(po_attr, f"list({po_attr})")
        else:
            to_po = _guarded(entity_attr, f'[dump_value_object(item, "json") for item in {entity_attr}]')
            to_entity = _guarded(po_attr, f'[load_value_object({semantic_type}, item, "json") for item in {po_attr}]')
    else:
        to_po = entity_attr
        to_entity = po_attr

    return Conversion(
        field_name=column.field_name,
        column_name=column.column_name,
        to_po=to_po,
        to_entity=to_entity,
    )


class ConvertorGenerator(ArtifactGenerator):
    """Renders ``<Agg>Convertor`` with static ``to_po`` / ``to_entity``."""

    kind = ArtifactKinds.CONVERTOR
    template_name = "convertor.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        conversions: List[Conversion] = []
        model_imports: Set[str] = {aggregate.name}
        needs_value_objects = False

        for f in aggregate.persisted_fields:
            column = map_field(aggregate, f)
            conversions.append(build_conversion(column, f.semantic_type, f.is_basic))
            if column.category == PersistenceCategory.VALUE_OBJECT or (
                column.category == PersistenceCategory.COLLECTION and not f.is_basic
            ):
                needs_value_objects = True
            if not f.is_basic and column.category != PersistenceCategory.BASIC:
                model_imports.add(f.semantic_type)

        context = self.base_context(aggregate)
        context.update({
            "conversions": conversions,
            "model_imports": sorted(model_imports),
            "needs_value_objects": needs_value_objects,
        })
        path = self.output_path(module_filename(aggregate, "_convertor"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]
