"""
Repository generators.

The interface lives in the domain layer and extends the runtime's generic
``Repository`` protocol; the implementation lives in the infrastructure
layer and extends ``BaseRepository``. Both carry the same extension
accessors, derived from field annotations by ``derive_extension_methods``.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..constants import ArtifactKinds
from ..domain.models import AggregateDescriptor, Artifact, JunctionTable
from ..domain.naming import to_snake_case
from ..domain.registry import RegistrySnapshot
from ..domain.type_mapping import ColumnMapping, collect_imports, map_field
from .base import ArtifactGenerator, module_filename


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtensionMethod:
    """A generated lookup accessor for one field."""

    name: str
    field_name: str
    param_name: str
    param_type: str
    returns_many: bool
    column: ColumnMapping

    @property
    def is_single(self) -> bool:
        return not self.returns_many


def derive_extension_methods(aggregate: AggregateDescriptor) -> List[ExtensionMethod]:
    """
    Derive the lookup accessors of an aggregate.

    ``unique`` fields get a single-object ``get_by_<field>``; otherwise
    ``indexed`` or reference fields get a list ``find_by_<field>``. A field
    never gets both. The identity field is covered by ``find_by_id``.
    """
    id_field = aggregate.id_field
    methods = []

    for f in aggregate.persisted_fields:
        if id_field is not None and f.name == id_field.name:
            continue

        annotations = f.annotations
        if annotations.unique:
            returns_many = False
        elif annotations.indexed or annotations.outward_ref is not None:
            returns_many = True
        else:
            continue

        column = map_field(aggregate, f)
        snake = to_snake_case(f.name)
        prefix = "find_by" if returns_many else "get_by"
        methods.append(ExtensionMethod(
            name=f"{prefix}_{snake}",
            field_name=f.name,
            param_name=snake,
            param_type=column.python_type,
            returns_many=returns_many,
            column=column,
        ))

    return methods


def extension_imports(methods: List[ExtensionMethod]) -> List[str]:
    return collect_imports([m.column for m in methods])


@dataclass(frozen=True)
class JunctionAccessor:
    """Link helpers of one pure many-to-many junction, seen from one side."""

    table_name: str
    own_column: str
    other_column: str
    other_name: str
    suffix: str


def junction_accessors(aggregate: AggregateDescriptor, snapshot: RegistrySnapshot) -> List[JunctionAccessor]:
    accessors = []
    for junction in snapshot.get_junctions_of(aggregate.name):
        accessors.append(_accessor_for(aggregate.name, junction))
    return accessors


def _accessor_for(name: str, junction: JunctionTable) -> JunctionAccessor:
    if junction.left_aggregate == junction.right_aggregate:
        return JunctionAccessor(
            table_name=junction.table_name,
            own_column=junction.left_column,
            other_column=junction.right_column,
            other_name=name,
            suffix=f"related_{to_snake_case(name)}",
        )
    if junction.left_aggregate == name:
        own, other, other_name = junction.left_column, junction.right_column, junction.right_aggregate
    else:
        own, other, other_name = junction.right_column, junction.left_column, junction.left_aggregate
    return JunctionAccessor(
        table_name=junction.table_name,
        own_column=own,
        other_column=other,
        other_name=other_name,
        suffix=to_snake_case(other_name),
    )


class _RepositoryGeneratorBase(ArtifactGenerator):
    def repository_context(self, aggregate: AggregateDescriptor, snapshot: RegistrySnapshot):
        methods = derive_extension_methods(aggregate)
        context = self.base_context(aggregate)
        context.update({
            "methods": methods,
            "imports": extension_imports(methods),
            "junctions": junction_accessors(aggregate, snapshot),
        })
        return context


class RepositoryInterfaceGenerator(_RepositoryGeneratorBase):
    """Renders the domain-layer ``<Agg>Repository`` protocol."""

    kind = ArtifactKinds.REPOSITORY_INTERFACE
    template_name = "repository_interface.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        context = self.repository_context(aggregate, snapshot)
        path = self.output_path(module_filename(aggregate, "_repository"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]


class RepositoryImplGenerator(_RepositoryGeneratorBase):
    """Renders the infrastructure-layer ``<Agg>RepositoryImpl``."""

    kind = ArtifactKinds.REPOSITORY_IMPL
    template_name = "repository_impl.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        if aggregate.id_field is None:
            raise ValueError(f"Aggregate {aggregate.name} has no identity field")

        context = self.repository_context(aggregate, snapshot)
        context["id_column"] = aggregate.id_field.persisted_name
        path = self.output_path(module_filename(aggregate, "_repository_impl"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]
