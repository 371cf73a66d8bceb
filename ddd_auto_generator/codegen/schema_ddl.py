"""Schema DDL generator: one ``schema.sql`` covering every aggregate table and junction table."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..constants import ArtifactKinds, OutputLayout
from ..domain.models import AggregateDescriptor, Artifact, JunctionTable
from ..domain.naming import to_lower_snake
from ..domain.registry import RegistrySnapshot
from ..domain.type_mapping import IDENTITY_SQL_TYPE, ColumnMapping, get_basic_mapping, map_aggregate
from ..exceptions import GenerationError, PartialGenerationError
from .base import ArtifactGenerator
from .repositories import derive_extension_methods


logger = logging.getLogger(__name__)

FOREIGN_KEY_FALLBACK_TYPE = "BIGINT"


def quote(identifier: str) -> str:
    """Quote an SQL identifier; table names such as ``order`` are reserved words."""
    return '"' + identifier.replace('"', '""') + '"'


@dataclass(frozen=True)
class TableDDL:
    name: str
    aggregate: str
    columns: List[str]
    indexes: List[str]


@dataclass(frozen=True)
class JunctionDDL:
    name: str
    columns: List[str]
    primary_key: str


def column_definition(column: ColumnMapping) -> str:
    parts = [quote(column.column_name), column.sql_type]
    if column.is_primary_key:
        parts.append("PRIMARY KEY")
    elif not column.nullable:
        parts.append("NOT NULL")
    if column.unique:
        parts.append("UNIQUE")
    return " ".join(parts)


def foreign_key_type(aggregate: Optional[AggregateDescriptor]) -> str:
    """SQL type of a column pointing at an aggregate's identity."""
    if aggregate is None or aggregate.id_field is None or not aggregate.id_field.is_basic:
        return FOREIGN_KEY_FALLBACK_TYPE
    sql_type = get_basic_mapping(aggregate.id_field.semantic_type).sql_type
    return FOREIGN_KEY_FALLBACK_TYPE if sql_type == IDENTITY_SQL_TYPE else sql_type


def table_ddl(aggregate: AggregateDescriptor) -> TableDDL:
    table = to_lower_snake(aggregate.name)
    columns = map_aggregate(aggregate)
    if not columns:
        raise ValueError(f"Aggregate {aggregate.name} has no persisted fields")

    indexes = []
    for method in derive_extension_methods(aggregate):
        if method.returns_many:
            column = method.column.column_name
            indexes.append(
                f"CREATE INDEX IF NOT EXISTS {quote(f'idx_{table}_{column}')} ON {quote(table)} ({quote(column)});"
            )

    return TableDDL(
        name=quote(table),
        aggregate=aggregate.name,
        columns=[column_definition(c) for c in columns],
        indexes=indexes,
    )


def junction_ddl(junction: JunctionTable, snapshot: RegistrySnapshot) -> JunctionDDL:
    left = snapshot.find(junction.left_aggregate)
    right = snapshot.find(junction.right_aggregate)
    left_table = quote(to_lower_snake(junction.left_aggregate))
    right_table = quote(to_lower_snake(junction.right_aggregate))

    columns = [
        f"{quote(junction.left_column)} {foreign_key_type(left)} NOT NULL "
        f"REFERENCES {left_table} ({quote(junction.left_id_field)}) ON DELETE CASCADE",
        f"{quote(junction.right_column)} {foreign_key_type(right)} NOT NULL "
        f"REFERENCES {right_table} ({quote(junction.right_id_field)}) ON DELETE CASCADE",
    ]
    return JunctionDDL(
        name=quote(junction.table_name),
        columns=columns,
        primary_key=f"PRIMARY KEY ({quote(junction.left_column)}, {quote(junction.right_column)})",
    )


class SchemaDDLGenerator(ArtifactGenerator):
    """
    Renders ``schema.sql``.

    Aggregate tables come first, sorted by aggregate name, then the pure
    junction tables. Business-aggregate junctions already have their own
    aggregate table and are not emitted twice.
    """

    kind = ArtifactKinds.SCHEMA_DDL
    is_global = True
    template_name = "schema.sql.j2"

    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        """
        Raises:
            PartialGenerationError: When some aggregates could not be given a
                table; the schema for the rest is attached to the error
        """
        tables = []
        errors: List[GenerationError] = []
        for a in snapshot.get_all():
            try:
                tables.append(table_ddl(a))
            except ValueError as e:
                logger.warning(f"Leaving {a.name} out of {OutputLayout.SCHEMA_FILE}: {e}")
                errors.append(GenerationError(str(e), artifact_kind=self.kind, aggregate=a.name))

        skipped = {error.aggregate for error in errors}
        junctions = [
            junction_ddl(j, snapshot)
            for j in sorted(snapshot.junctions, key=lambda j: j.table_name)
            if j.is_pure and j.left_aggregate not in skipped and j.right_aggregate not in skipped
        ]

        context = self.base_context()
        context.update({"tables": tables, "junctions": junctions})
        path = self.output_path(OutputLayout.SCHEMA_FILE)
        artifacts = [self.artifact(path, self.render(self.template_name, context))]

        if errors:
            raise PartialGenerationError(artifacts, errors, artifact_kind=self.kind)
        return artifacts
