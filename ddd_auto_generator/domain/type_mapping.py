"""
Type mapping domain logic for DDD Auto Generator.

This module holds the single table that maps a semantic field type to its
Python annotation, the import it needs, the SQL column type and the query
field class. The persisted-object, query-field and schema generators all
read from here so a column never disagrees with its attribute.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..constants import ValueObjectStrategies
from .models import AggregateDescriptor, FieldDescriptor


@dataclass(frozen=True)
class TypeMapping:
    """How one basic type is rendered in Python and SQL."""

    python_type: str
    import_line: Optional[str]
    sql_type: str
    query_field: str


BASIC_TYPE_MAPPINGS: Dict[str, TypeMapping] = {
    "int": TypeMapping("int", None, "BIGINT", "IntField"),
    "str": TypeMapping("str", None, "VARCHAR(255)", "StrField"),
    "float": TypeMapping("float", None, "DOUBLE PRECISION", "FloatField"),
    "bool": TypeMapping("bool", None, "BOOLEAN", "BoolField"),
    "bytes": TypeMapping("bytes", None, "BYTEA", "BytesField"),
    "datetime": TypeMapping("datetime", "from datetime import datetime", "TIMESTAMP", "DateTimeField"),
    "date": TypeMapping("date", "from datetime import date", "DATE", "DateField"),
    "time": TypeMapping("time", "from datetime import time", "TIME", "TimeField"),
    "Decimal": TypeMapping("Decimal", "from decimal import Decimal", "NUMERIC(18,4)", "DecimalField"),
    "UUID": TypeMapping("UUID", "from uuid import UUID", "UUID", "UUIDField"),
}

IDENTITY_SQL_TYPE = "BIGSERIAL"
ENUM_MAPPING = TypeMapping("str", None, "VARCHAR(64)", "EnumField")
JSON_MAPPING = TypeMapping("Any", "from typing import Any", "JSONB", "JsonField")
TEXT_MAPPING = TypeMapping("str", None, "TEXT", "StrField")

# Every query field class the shared field-types module must define
QUERY_FIELD_CLASSES: Tuple[str, ...] = tuple(
    sorted({m.query_field for m in BASIC_TYPE_MAPPINGS.values()}
           | {ENUM_MAPPING.query_field, JSON_MAPPING.query_field, TEXT_MAPPING.query_field})
)


class PersistenceCategory:
    """How a persisted field is stored."""

    BASIC = "basic"
    ENUM = "enum"
    VALUE_OBJECT = "value_object"
    COLLECTION = "collection"


@dataclass(frozen=True)
class ColumnMapping:
    """A persisted field resolved against the type table."""

    field_name: str
    column_name: str
    python_type: str
    sql_type: str
    query_field: str
    nullable: bool
    is_primary_key: bool
    unique: bool
    category: str
    value_object_strategy: Optional[str] = None
    imports: Tuple[str, ...] = ()

    @property
    def annotation(self) -> str:
        """Python annotation for the persisted-object attribute; unsaved rows have no key yet."""
        if self.nullable or self.is_primary_key:
            return f"Optional[{self.python_type}]"
        return self.python_type


def get_basic_mapping(semantic_type: str) -> TypeMapping:
    """
    Look up a basic type.

    Raises:
        KeyError: If the type is not one of the basic types
    """
    return BASIC_TYPE_MAPPINGS[semantic_type]


def classify_field(field: FieldDescriptor) -> str:
    """Decide the persistence category of a persisted field."""
    if field.is_repeated:
        return PersistenceCategory.COLLECTION
    if field.annotations.has_enum:
        return PersistenceCategory.ENUM
    if field.annotations.is_value_object or not field.is_basic:
        return PersistenceCategory.VALUE_OBJECT
    return PersistenceCategory.BASIC


def map_field(aggregate: AggregateDescriptor, field: FieldDescriptor) -> ColumnMapping:
    """
    Resolve one persisted field into its column mapping.

    Nullability follows ``is_optional`` only; the identity column is never
    nullable, and an integer identity becomes an auto-incrementing column.
    """
    id_field = aggregate.id_field
    is_pk = id_field is not None and id_field.name == field.name
    category = classify_field(field)
    strategy = None

    if category == PersistenceCategory.ENUM:
        mapping = ENUM_MAPPING
    elif category == PersistenceCategory.COLLECTION:
        mapping = JSON_MAPPING
    elif category == PersistenceCategory.VALUE_OBJECT:
        strategy = field.annotations.value_object_strategy or ValueObjectStrategies.DEFAULT
        mapping = TEXT_MAPPING if strategy == ValueObjectStrategies.TEXT else JSON_MAPPING
    else:
        mapping = get_basic_mapping(field.semantic_type)

    sql_type = mapping.sql_type
    if is_pk and category == PersistenceCategory.BASIC and field.semantic_type == "int":
        sql_type = IDENTITY_SQL_TYPE

    imports: List[str] = []
    if mapping.import_line:
        imports.append(mapping.import_line)

    return ColumnMapping(
        field_name=field.name,
        column_name=field.persisted_name,
        python_type=mapping.python_type,
        sql_type=sql_type,
        query_field=mapping.query_field,
        nullable=field.is_optional and not is_pk,
        is_primary_key=is_pk,
        unique=field.annotations.unique and not is_pk,
        category=category,
        value_object_strategy=strategy,
        imports=tuple(imports),
    )


def map_aggregate(aggregate: AggregateDescriptor) -> List[ColumnMapping]:
    """Column mappings for every persisted field, in declaration order."""
    return [map_field(aggregate, f) for f in aggregate.persisted_fields]


def collect_imports(columns: List[ColumnMapping]) -> List[str]:
    """Distinct import lines needed by a set of columns, sorted."""
    return sorted({line for column in columns for line in column.imports})
