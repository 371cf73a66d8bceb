"""Query field generators: the shared field types module and one ``<Agg>Fields`` class per aggregate."""

from typing import List, Optional

from ..constants import ArtifactKinds, OutputLayout
from ..domain.models import AggregateDescriptor, Artifact
from ..domain.registry import RegistrySnapshot
from ..domain.type_mapping import QUERY_FIELD_CLASSES, map_aggregate
from .base import ArtifactGenerator, module_filename


class FieldTypesGenerator(ArtifactGenerator):
    """Renders ``field_types.py`` once per run."""

    kind = ArtifactKinds.FIELD_TYPES
    is_global = True
    template_name = "field_types.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        context = self.base_context()
        context["field_classes"] = QUERY_FIELD_CLASSES
        path = self.output_path(OutputLayout.FIELD_TYPES_FILE)
        return [self.artifact(path, self.render(self.template_name, context))]


class QueryFieldsGenerator(ArtifactGenerator):
    """Renders the typed column accessors of one aggregate."""

    kind = ArtifactKinds.QUERY_FIELDS
    template_name = "query_fields.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        columns = map_aggregate(aggregate)
        context = self.base_context(aggregate)
        context.update({
            "columns": columns,
            "field_classes": sorted({c.query_field for c in columns}),
        })
        path = self.output_path(module_filename(aggregate, "_fields"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]
