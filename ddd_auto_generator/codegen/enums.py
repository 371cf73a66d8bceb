"""Enum generator: one ``(str, Enum)`` module per collected enum."""

import logging
from typing import List, Optional

from ..constants import ArtifactKinds
from ..domain.models import AggregateDescriptor, Artifact, EnumDescriptor
from ..domain.naming import enum_member_name, to_snake_case
from ..domain.registry import RegistrySnapshot
from .base import ArtifactGenerator


logger = logging.getLogger(__name__)


def enum_members(descriptor: EnumDescriptor) -> List[tuple]:
    """
    (member name, value) pairs of an enum.

    Raises:
        ValueError: If two values collapse onto the same member name
    """
    members = []
    seen = {}
    for value in descriptor.values:
        member = enum_member_name(value)
        if member in seen:
            raise ValueError(
                f"Enum {descriptor.name}: values '{seen[member]}' and '{value}' both map to member {member}"
            )
        seen[member] = value
        members.append((member, value))
    return members


def enum_module(descriptor: EnumDescriptor) -> str:
    return to_snake_case(descriptor.name)


class EnumsGenerator(ArtifactGenerator):
    """Renders every enum of the snapshot."""

    kind = ArtifactKinds.ENUMS
    is_global = True
    template_name = "enum.py.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        artifacts = []
        for descriptor in snapshot.enums:
            context = self.base_context()
            context.update({
                "enum": descriptor,
                "members": enum_members(descriptor),
            })
            path = self.output_path(f"{enum_module(descriptor)}.py")
            artifacts.append(self.artifact(path, self.render(self.template_name, context)))
        return artifacts
