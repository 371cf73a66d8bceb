"""
Core domain models for DDD Auto Generator.

These models describe declared aggregates, the relations inferred between
them, synthesized junction tables and collected enums. They are independent
of how declarations are read and of how artifacts are rendered, and they are
immutable once built: aggregates refer to each other by name only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..constants import FieldNames
from .naming import to_snake_case


BASIC_TYPES = frozenset({
    "int", "str", "float", "bool", "bytes",
    "datetime", "date", "time", "Decimal", "UUID",
})


def is_basic_type(semantic_type: str) -> bool:
    """Check whether a semantic type belongs to the fixed basic-type set."""
    return semantic_type in BASIC_TYPES


class RelationKind(Enum):
    """Kinds of associations between aggregates."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"
    REF = "ref"

    @classmethod
    def derive(cls, field_descriptor: "FieldDescriptor") -> Optional["RelationKind"]:
        """
        Derive the relation kind of a single field.

        Rules, checked in order:
          1. basic type + outward ref annotation -> REF
          2. associated entity annotation -> ONE_TO_MANY if repeated, else ONE_TO_ONE

        Many-to-many is never derived from a field; it comes from mutual
        aggregate-level references.

        Returns:
            The relation kind, or None when the field is not a relation
        """
        annotations = field_descriptor.annotations
        if annotations.outward_ref is not None and is_basic_type(field_descriptor.semantic_type):
            return cls.REF
        if annotations.is_associated_entity:
            return cls.ONE_TO_MANY if field_descriptor.is_repeated else cls.ONE_TO_ONE
        return None


class JunctionKind(Enum):
    """How a many-to-many association is materialized."""

    PURE_ASSOCIATION = "pure_association"
    BUSINESS_AGGREGATE = "business_aggregate"


@dataclass(frozen=True)
class FieldAnnotations:
    """Closed set of annotations a field may carry."""

    unique: bool = False
    outward_ref: Optional[str] = None  # target aggregate name
    required: bool = False
    is_associated_entity: bool = False
    is_value_object: bool = False
    value_object_strategy: Optional[str] = None
    indexed: bool = False
    enum_values: Tuple[str, ...] = ()
    identity: bool = False

    @property
    def has_enum(self) -> bool:
        return bool(self.enum_values)


@dataclass(frozen=True)
class AggregateAnnotations:
    """Closed set of annotations an aggregate may carry."""

    base_entity_trait: Optional[str] = None
    is_junction_aggregate: bool = False
    outward_refs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldDescriptor:
    """
    A single declared field of an aggregate.

    ``persisted_name`` defaults to the snake_case field name when the
    declaration does not name a column explicitly.
    """

    name: str
    semantic_type: str
    is_optional: bool = False
    is_repeated: bool = False
    persisted_name: str = ""
    annotations: FieldAnnotations = field(default_factory=FieldAnnotations)

    def __post_init__(self):
        if not self.persisted_name:
            object.__setattr__(self, "persisted_name", to_snake_case(self.name))

    @property
    def is_basic(self) -> bool:
        return is_basic_type(self.semantic_type)

    @property
    def is_persisted(self) -> bool:
        """Associated entities live in their own tables, everything else is a column."""
        return not self.annotations.is_associated_entity

    @property
    def is_reference(self) -> bool:
        return self.annotations.outward_ref is not None

    def identity_priority(self) -> Optional[int]:
        """
        Rank this field as an identity candidate.

        Returns:
            1 for an explicit identity tag, 2 for a field named ID,
            3 for a name ending in ID, 4 for the integer identity type,
            None when the field cannot be the identity
        """
        if self.annotations.identity:
            return 1
        if self.name.lower() == FieldNames.IDENTITY_NAME:
            return 2
        for suffix in FieldNames.IDENTITY_SUFFIXES:
            if self.name.endswith(suffix) and len(self.name) > len(suffix):
                return 3
        if self.semantic_type == FieldNames.IDENTITY_TYPE and not self.is_repeated:
            return 4
        return None


@dataclass(frozen=True)
class BaseEntityTraits:
    """Conventional capabilities detected from field names."""

    has_soft_delete: bool = False
    has_optimistic_lock: bool = False
    has_audit: bool = False

    @classmethod
    def from_fields(cls, fields: Tuple[FieldDescriptor, ...]) -> "BaseEntityTraits":
        names = {to_snake_case(f.name) for f in fields}
        return cls(
            has_soft_delete=bool(names & FieldNames.SOFT_DELETE_NAMES),
            has_optimistic_lock=bool(names & FieldNames.OPTIMISTIC_LOCK_NAMES),
            has_audit=bool(names & FieldNames.AUDIT_NAMES),
        )

    def describe(self) -> List[str]:
        """Human-readable trait labels, used in the run summary."""
        labels = []
        if self.has_soft_delete:
            labels.append("soft delete")
        if self.has_optimistic_lock:
            labels.append("optimistic lock")
        if self.has_audit:
            labels.append("audit")
        return labels


def select_id_field(fields: Tuple[FieldDescriptor, ...]) -> Optional[FieldDescriptor]:
    """
    Pick the identity field by priority.

    Within a priority level the first field in declaration order wins.
    """
    best: Optional[FieldDescriptor] = None
    best_priority: Optional[int] = None
    for candidate in fields:
        priority = candidate.identity_priority()
        if priority is None:
            continue
        if best_priority is None or priority < best_priority:
            best, best_priority = candidate, priority
    return best


@dataclass(frozen=True)
class AggregateDescriptor:
    """
    A declared aggregate root and its fields.

    Built once by ingestion and never mutated. Other aggregates are only
    referenced by name, through annotations and field types.
    """

    name: str
    fields: Tuple[FieldDescriptor, ...] = ()
    annotations: AggregateAnnotations = field(default_factory=AggregateAnnotations)
    source_path: Optional[str] = None
    module_name: str = ""

    def __post_init__(self):
        if not isinstance(self.fields, tuple):
            object.__setattr__(self, "fields", tuple(self.fields))
        if not self.module_name:
            object.__setattr__(self, "module_name", to_snake_case(self.name))

    @property
    def id_field(self) -> Optional[FieldDescriptor]:
        return select_id_field(self.fields)

    @property
    def base_entity_traits(self) -> BaseEntityTraits:
        return BaseEntityTraits.from_fields(self.fields)

    @property
    def persisted_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.fields if f.is_persisted]

    @property
    def enum_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.fields if f.annotations.has_enum]

    def summary(self) -> str:
        """
        One-line overview of the aggregate for the analysis log.

        Example:
            'Order: id=OrderID (int), traits=soft delete, optimistic lock, audit, unique=1, ref=2, required=1, entity=1'
        """
        id_field = self.id_field
        identity = f"{id_field.name} ({id_field.semantic_type})" if id_field else "none"
        traits = ", ".join(self.base_entity_traits.describe()) or "none"
        counts = {
            "unique": sum(1 for f in self.fields if f.annotations.unique),
            "ref": sum(1 for f in self.fields if f.is_reference),
            "required": sum(1 for f in self.fields if f.annotations.required),
            "entity": sum(1 for f in self.fields if f.annotations.is_associated_entity),
        }
        counted = ", ".join(f"{label}={count}" for label, count in counts.items())
        return f"{self.name}: id={identity}, traits={traits}, {counted}"

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class RelationRecord:
    """An inferred association between two aggregates."""

    source: str
    target: str
    kind: RelationKind
    field: Optional[FieldDescriptor] = None
    is_owner: bool = False

    @property
    def field_name(self) -> Optional[str]:
        return self.field.name if self.field else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'source': self.source,
            'target': self.target,
            'kind': self.kind.value,
            'field': self.field_name,
            'is_owner': self.is_owner,
        }


@dataclass(frozen=True)
class JunctionTable:
    """Association table for a many-to-many pair, ordered left < right."""

    table_name: str
    left_aggregate: str
    right_aggregate: str
    left_column: str
    right_column: str
    left_id_field: str
    right_id_field: str
    kind: JunctionKind = JunctionKind.PURE_ASSOCIATION

    @property
    def is_pure(self) -> bool:
        return self.kind == JunctionKind.PURE_ASSOCIATION

    def involves(self, aggregate_name: str) -> bool:
        return aggregate_name in (self.left_aggregate, self.right_aggregate)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'table_name': self.table_name,
            'left_aggregate': self.left_aggregate,
            'right_aggregate': self.right_aggregate,
            'left_column': self.left_column,
            'right_column': self.right_column,
            'left_id_field': self.left_id_field,
            'right_id_field': self.right_id_field,
            'kind': self.kind.value,
        }


@dataclass(frozen=True)
class EnumDescriptor:
    """An enum collected from a field carrying enumerated values."""

    name: str
    owning_aggregate: str
    owning_field: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class Artifact:
    """One generated output: a path relative to the output root and its content."""

    path: str
    content: str
    kind: str = "unknown"
    aggregate: Optional[str] = None

    @property
    def code_lines(self) -> int:
        return len(self.content.splitlines())
