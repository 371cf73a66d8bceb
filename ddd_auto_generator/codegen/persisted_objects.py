"""Persisted-object generator: a flat dataclass mirroring the aggregate's table row."""

import logging
from typing import List, Optional

from ..constants import ArtifactKinds
from ..domain.models import AggregateDescriptor, Artifact
from ..domain.registry import RegistrySnapshot
from ..domain.type_mapping import collect_imports, map_aggregate
from .base import ArtifactGenerator, module_filename


logger = logging.getLogger(__name__)


class PersistedObjectGenerator(ArtifactGenerator):
    """
    Renders ``<Agg>PO``.

    Columns without a default (non-nullable, non-key) come first so the
    dataclass stays valid; the declared column order is kept in ``__columns__``.
    """

    kind = ArtifactKinds.PERSISTED_OBJECT
    template_name = "persisted_object.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        columns = map_aggregate(aggregate)
        if not columns:
            raise ValueError(f"Aggregate {aggregate.name} has no persisted fields")

        required = [c for c in columns if not c.nullable and not c.is_primary_key]
        optional = [c for c in columns if c.nullable or c.is_primary_key]

        context = self.base_context(aggregate)
        context.update({
            "columns": columns,
            "required_columns": required,
            "optional_columns": optional,
            "imports": collect_imports(columns),
            "primary_key": next((c for c in columns if c.is_primary_key), None),
        })

        path = self.output_path(module_filename(aggregate, "_po"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]
