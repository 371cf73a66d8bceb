"""
Domain service generators.

The service implementation validates an aggregate before it reaches the
repository: required fields, enum membership, uniqueness and the existence
of referenced aggregates. Lookup accessors are shared with the repository.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..constants import ArtifactKinds
from ..domain.models import AggregateDescriptor, Artifact, RelationKind
from ..domain.naming import to_snake_case
from ..domain.registry import RegistrySnapshot
from .base import ArtifactGenerator, module_filename
from .enums import enum_module
from .repositories import derive_extension_methods, extension_imports


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequiredCheck:
    field_name: str
    is_text: bool
    is_repeated: bool


@dataclass(frozen=True)
class EnumCheck:
    field_name: str
    enum_name: str
    enum_module: str


@dataclass(frozen=True)
class ReferenceCheck:
    field_name: str
    target: str
    repository_attr: str


def required_checks(aggregate: AggregateDescriptor) -> List[RequiredCheck]:
    return [
        RequiredCheck(
            field_name=f.name,
            is_text=f.semantic_type == "str" and not f.is_repeated,
            is_repeated=f.is_repeated,
        )
        for f in aggregate.fields
        if f.annotations.required
    ]


def enum_checks(aggregate: AggregateDescriptor, snapshot: RegistrySnapshot) -> List[EnumCheck]:
    checks = []
    for f in aggregate.enum_fields:
        descriptor = snapshot.get_enum_for(aggregate.name, f.name)
        if descriptor is None:
            continue
        checks.append(EnumCheck(f.name, descriptor.name, enum_module(descriptor)))
    return checks


def reference_checks(aggregate: AggregateDescriptor, snapshot: RegistrySnapshot) -> List[ReferenceCheck]:
    """Existence checks for references whose target is generated alongside."""
    checks = []
    for relation in snapshot.get_relations_of(aggregate.name):
        if relation.kind != RelationKind.REF or relation.field is None:
            continue
        if not snapshot.exists(relation.target):
            logger.debug(f"{aggregate.name}.{relation.field_name}: no existence check for external '{relation.target}'")
            continue
        checks.append(ReferenceCheck(
            field_name=relation.field.name,
            target=relation.target,
            repository_attr=f"{to_snake_case(relation.target)}_repository",
        ))
    return checks


class ServiceInterfaceGenerator(ArtifactGenerator):
    """Renders the domain-layer ``<Agg>Service`` protocol."""

    kind = ArtifactKinds.SERVICE_INTERFACE
    template_name = "service_interface.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        methods = derive_extension_methods(aggregate)
        context = self.base_context(aggregate)
        context.update({
            "methods": methods,
            "imports": extension_imports(methods),
        })
        path = self.output_path(module_filename(aggregate, "_service"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]


class ServiceImplGenerator(ArtifactGenerator):
    """Renders ``<Agg>ServiceImpl`` with its validation rules."""

    kind = ArtifactKinds.SERVICE_IMPL
    template_name = "service_impl.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        methods = derive_extension_methods(aggregate)
        references = reference_checks(aggregate, snapshot)

        # One repository dependency per referenced aggregate
        dependencies = {}
        for check in references:
            if check.target != aggregate.name:
                dependencies.setdefault(check.target, check.repository_attr)

        context = self.base_context(aggregate)
        context.update({
            "methods": methods,
            "unique_methods": [m for m in methods if m.is_single],
            "imports": extension_imports(methods),
            "required": required_checks(aggregate),
            "enums": enum_checks(aggregate, snapshot),
            "references": references,
            "dependencies": sorted(dependencies.items()),
        })
        path = self.output_path(module_filename(aggregate, "_service_impl"))
        return [self.artifact(path, self.render(self.template_name, context), aggregate)]
