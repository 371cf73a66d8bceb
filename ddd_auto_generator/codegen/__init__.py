"""
Artifact generation module.

One generator strategy per artifact kind, created through
``GeneratorFactory`` so the orchestrator only deals in kind names.
"""

from typing import Dict, List, Optional, Type

from jinja2 import Environment

from ..constants import ArtifactKinds
from .base import ArtifactGenerator, GenerationSettings, setup_jinja_env
from .convertors import ConvertorGenerator
from .entity_traits import EntityTraitsGenerator
from .enums import EnumsGenerator
from .persisted_objects import PersistedObjectGenerator
from .query_fields import FieldTypesGenerator, QueryFieldsGenerator
from .repositories import (
    RepositoryImplGenerator,
    RepositoryInterfaceGenerator,
    derive_extension_methods,
)
from .schema_ddl import SchemaDDLGenerator
from .services import ServiceImplGenerator, ServiceInterfaceGenerator
from .splice import splice_generated_block
from .writer import ArtifactWriter, FileSystemWriter, MemoryWriter, PathLockRegistry


class GeneratorFactory:
    """Factory for creating artifact generators by kind."""

    _registry: Dict[str, Type[ArtifactGenerator]] = {
        ArtifactKinds.ENTITY_TRAITS: EntityTraitsGenerator,
        ArtifactKinds.ENUMS: EnumsGenerator,
        ArtifactKinds.FIELD_TYPES: FieldTypesGenerator,
        ArtifactKinds.SCHEMA_DDL: SchemaDDLGenerator,
        ArtifactKinds.PERSISTED_OBJECT: PersistedObjectGenerator,
        ArtifactKinds.CONVERTOR: ConvertorGenerator,
        ArtifactKinds.QUERY_FIELDS: QueryFieldsGenerator,
        ArtifactKinds.REPOSITORY_INTERFACE: RepositoryInterfaceGenerator,
        ArtifactKinds.REPOSITORY_IMPL: RepositoryImplGenerator,
        ArtifactKinds.SERVICE_INTERFACE: ServiceInterfaceGenerator,
        ArtifactKinds.SERVICE_IMPL: ServiceImplGenerator,
    }

    @classmethod
    def register(cls, kind: str, generator_class: Type[ArtifactGenerator]) -> None:
        """Register (or replace) the generator of an artifact kind."""
        cls._registry[kind] = generator_class

    @classmethod
    def create(
        cls,
        kind: str,
        settings: Optional[GenerationSettings] = None,
        env: Optional[Environment] = None,
    ) -> ArtifactGenerator:
        """Create a generator instance by kind."""
        generator_class = cls._registry.get(kind)
        if not generator_class:
            raise ValueError(f"Unknown artifact kind: {kind}")
        return generator_class(settings, env)

    @classmethod
    def create_all(
        cls,
        kinds: List[str],
        settings: Optional[GenerationSettings] = None,
    ) -> Dict[str, ArtifactGenerator]:
        """Create generators for several kinds sharing one template environment."""
        env = setup_jinja_env()
        return {kind: cls.create(kind, settings, env) for kind in kinds}


__all__ = [
    'ArtifactGenerator',
    'ArtifactWriter',
    'FileSystemWriter',
    'GenerationSettings',
    'GeneratorFactory',
    'MemoryWriter',
    'PathLockRegistry',
    'derive_extension_methods',
    'setup_jinja_env',
    'splice_generated_block',
]
