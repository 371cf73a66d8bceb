"""
Centralized constants for DDD Auto Generator.

Annotation vocabulary, conventional field names, artifact kinds and output
layout live here so the ingestion front-end, the analyzer and the generators
agree on them.
"""

from typing import Dict, List, Set


# =============================================================================
# CORE CONFIGURATION
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    BASE_PACKAGE = "app"
    MODEL_PACKAGE = "app.domain.model"
    RUNTIME_PACKAGE = "ddd_runtime"
    WORKERS = 4
    STRICT_RELATIONS = True
    CONFIG_FILE_NAME = "ddd-codegen.yaml"


# =============================================================================
# ANNOTATION VOCABULARY
# =============================================================================

class Annotations:
    """Annotation tags recognised in model comments."""

    PREFIX = "+ddd:"

    # Aggregate level
    AGGREGATE = "aggregate"
    BASE_ENTITY = "baseEntity"
    MANY_TO_MANY = "manyToMany"
    REF = "ref"

    # Field level
    ID = "id"
    UNIQUE = "unique"
    REQUIRED = "required"
    ENTITY = "entity"
    VALUE_OBJECT = "valueObject"
    INDEX = "index"
    ENUM = "enum"
    COLUMN = "column"

    AGGREGATE_TAGS: Set[str] = {AGGREGATE, BASE_ENTITY, MANY_TO_MANY, REF}
    FIELD_TAGS: Set[str] = {ID, UNIQUE, REF, REQUIRED, ENTITY, VALUE_OBJECT, INDEX, ENUM, COLUMN}


class ValueObjectStrategies:
    """Persistence strategies for value-object fields."""

    JSON = "json"
    TEXT = "text"

    DEFAULT = JSON
    ALL: List[str] = [JSON, TEXT]


# =============================================================================
# FIELD NAMES
# =============================================================================

class FieldNames:
    """Conventional field names and type names."""

    # Base entity trait detection (compared in lower-snake form)
    SOFT_DELETE_NAMES: Set[str] = {"deleted_at"}
    OPTIMISTIC_LOCK_NAMES: Set[str] = {"version"}
    AUDIT_NAMES: Set[str] = {"created_at", "updated_at", "created_by", "updated_by"}

    IDENTITY_NAME = "id"
    IDENTITY_SUFFIXES = ("ID", "_id")
    IDENTITY_TYPE = "int"

    # Fallback id field name for junction tables whose aggregate has none
    DEFAULT_ID_FIELD = "id"

    PYTHON_KEYWORDS: Set[str] = {
        "False", "None", "True", "and", "as", "assert", "async", "await",
        "break", "class", "continue", "def", "del", "elif", "else", "except",
        "finally", "for", "from", "global", "if", "import", "in", "is",
        "lambda", "nonlocal", "not", "or", "pass", "raise", "return", "try",
        "while", "with", "yield"
    }


# =============================================================================
# ARTIFACTS
# =============================================================================

class ArtifactKinds:
    """Names of the artifact kinds, in Phase B execution order."""

    ENTITY_TRAITS = "entity_traits"
    ENUMS = "enums"
    FIELD_TYPES = "field_types"
    SCHEMA_DDL = "schema_ddl"
    PERSISTED_OBJECT = "persisted_object"
    CONVERTOR = "convertor"
    QUERY_FIELDS = "query_fields"
    REPOSITORY_INTERFACE = "repository_interface"
    REPOSITORY_IMPL = "repository_impl"
    SERVICE_INTERFACE = "service_interface"
    SERVICE_IMPL = "service_impl"

    # Run once, before the per-aggregate fan-out
    GLOBAL: List[str] = [ENUMS, FIELD_TYPES, SCHEMA_DDL]

    # Run once per aggregate, in this order
    PER_AGGREGATE: List[str] = [
        ENTITY_TRAITS,
        PERSISTED_OBJECT,
        CONVERTOR,
        QUERY_FIELDS,
        REPOSITORY_INTERFACE,
        REPOSITORY_IMPL,
        SERVICE_INTERFACE,
        SERVICE_IMPL,
    ]

    ALL: List[str] = GLOBAL + PER_AGGREGATE


class OutputLayout:
    """Relative output directories for each artifact kind."""

    DIRECTORIES: Dict[str, str] = {
        ArtifactKinds.ENUMS: "domain/enum",
        ArtifactKinds.FIELD_TYPES: "infrastructure/query",
        ArtifactKinds.SCHEMA_DDL: "sql",
        ArtifactKinds.PERSISTED_OBJECT: "infrastructure/po",
        ArtifactKinds.CONVERTOR: "infrastructure/convertor",
        ArtifactKinds.QUERY_FIELDS: "infrastructure/query",
        ArtifactKinds.REPOSITORY_INTERFACE: "domain/repository",
        ArtifactKinds.REPOSITORY_IMPL: "infrastructure/repository",
        ArtifactKinds.SERVICE_INTERFACE: "domain/service",
        ArtifactKinds.SERVICE_IMPL: "domain/service/impl",
    }

    SCHEMA_FILE = "schema.sql"
    FIELD_TYPES_FILE = "field_types.py"


class Splice:
    """Sentinel used by the in-place entity trait splice."""

    MARKER_TAG = "+ddd:generated"
    MARKER = "# +ddd:generated entity traits (do not edit below this line)"


class FileExtensions:
    """Common file extensions."""

    PYTHON = ".py"
    SQL = ".sql"
    YAML = ".yaml"
    JINJA2 = ".j2"
