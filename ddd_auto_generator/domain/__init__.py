"""
Domain module for DDD Auto Generator.

This module contains the semantic model of a declared domain: aggregate and
field descriptors, the registry that owns them and the analyzer that infers
relations between them. Nothing here knows how declarations are read or how
artifacts are rendered.
"""

from .models import (
    AggregateAnnotations,
    AggregateDescriptor,
    Artifact,
    BaseEntityTraits,
    EnumDescriptor,
    FieldAnnotations,
    FieldDescriptor,
    JunctionKind,
    JunctionTable,
    RelationKind,
    RelationRecord,
    is_basic_type,
    select_id_field,
)

from .registry import (
    Registry,
    RegistrySnapshot
)

from .relationships import RelationshipAnalyzer

from .type_mapping import (
    ColumnMapping,
    TypeMapping,
    map_aggregate,
    map_field
)

from .naming import (
    to_snake_case,
    to_lower_snake,
    to_pascal_case,
    reference_target_name,
    junction_table_name,
    foreign_key_column,
    validate_python_identifier
)

__all__ = [
    # Core models
    'AggregateAnnotations',
    'AggregateDescriptor',
    'Artifact',
    'BaseEntityTraits',
    'EnumDescriptor',
    'FieldAnnotations',
    'FieldDescriptor',
    'JunctionKind',
    'JunctionTable',
    'RelationKind',
    'RelationRecord',
    'is_basic_type',
    'select_id_field',

    # Registry
    'Registry',
    'RegistrySnapshot',

    # Relationships
    'RelationshipAnalyzer',

    # Type mapping
    'ColumnMapping',
    'TypeMapping',
    'map_aggregate',
    'map_field',

    # Naming
    'to_snake_case',
    'to_lower_snake',
    'to_pascal_case',
    'reference_target_name',
    'junction_table_name',
    'foreign_key_column',
    'validate_python_identifier'
]
