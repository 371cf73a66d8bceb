"""
Schema ingestion for DDD Auto Generator.

Turns annotated Python model modules into ``AggregateDescriptor`` objects.

A class is an aggregate when the comment block directly above it (or above
its decorators) carries ``+ddd:aggregate``. Every annotated class attribute
is a field; its annotations come from a trailing comment or from the comment
lines directly above it:

    # +ddd:aggregate
    # +ddd:ref(User)
    @dataclass
    class Role:
        id: int  # +ddd:id
        name: str  # +ddd:unique
        status: str  # +ddd:enum(ACTIVE, DISABLED)
"""

import ast
import io
import logging
import tokenize
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .constants import Annotations
from .domain.annotations import (
    Annotation,
    build_aggregate_annotations,
    build_field_annotations,
    parse_annotations,
)
from .domain.models import AggregateDescriptor, FieldDescriptor
from .domain.naming import reference_target_name
from .exceptions import IngestionError


logger = logging.getLogger(__name__)

OPTIONAL_WRAPPERS = {"Optional"}
UNION_WRAPPERS = {"Union"}
REPEATED_WRAPPERS = {"List", "list", "Sequence", "Set", "set", "FrozenSet", "frozenset", "Iterable"}
SKIPPED_WRAPPERS = {"ClassVar"}


class ModelParser:
    """
    Parses annotated model modules into aggregate descriptors.

    Example:
        >>> parser = ModelParser()
        >>> aggregates = parser.parse_directory("app/domain/model")
    """

    def parse_directory(self, model_dir) -> List[AggregateDescriptor]:
        """
        Parse every Python module below a directory.

        Files are visited in sorted order so the result is deterministic.

        Raises:
            IngestionError: If any file cannot be parsed
        """
        root = Path(model_dir)
        if not root.is_dir():
            raise IngestionError(f"Model directory not found: {model_dir}", file_path=str(model_dir))

        aggregates: List[AggregateDescriptor] = []
        for path in sorted(root.rglob("*.py")):
            relative = path.relative_to(root).with_suffix("")
            parts = [p for p in relative.parts if p != "__init__"]
            module_name = ".".join(parts)
            aggregates.extend(self.parse_file(path, module_name=module_name or None))

        logger.debug(f"Parsed {len(aggregates)} aggregate(s) from {root}")
        return aggregates

    def parse_file(self, path, module_name: Optional[str] = None) -> List[AggregateDescriptor]:
        """
        Parse the aggregates declared in one module.

        Args:
            path: Path of the module
            module_name: Dotted module name relative to the model package;
                defaults to the file stem

        Raises:
            IngestionError: On syntax errors, unknown annotations or unsupported field types
        """
        path = Path(path)
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise IngestionError(f"Cannot read model file: {e}", file_path=str(path)) from e

        return self.parse_source(source, str(path.resolve()), module_name or path.stem)

    def parse_source(self, source: str, file_path: str, module_name: str) -> List[AggregateDescriptor]:
        """Parse aggregates from source text."""
        try:
            tree = ast.parse(source, filename=file_path)
        except SyntaxError as e:
            raise IngestionError(f"Syntax error: {e.msg}", file_path=file_path, line=e.lineno) from e

        context = _SourceContext(source, file_path)
        aggregates = []

        for node in tree.body:
            if not isinstance(node, ast.ClassDef):
                continue
            aggregate = self._parse_class(node, context, module_name)
            if aggregate is not None:
                aggregates.append(aggregate)

        return aggregates

    def _parse_class(
        self, node: ast.ClassDef, context: "_SourceContext", module_name: str
    ) -> Optional[AggregateDescriptor]:
        first_line = min([node.lineno] + [d.lineno for d in node.decorator_list])
        annotations = context.annotations_above(first_line, Annotations.AGGREGATE_TAGS)
        is_aggregate, aggregate_annotations = build_aggregate_annotations(annotations)

        if not is_aggregate:
            if annotations:
                logger.warning(
                    f"{context.file_path}:{first_line}: class '{node.name}' has "
                    f"{Annotations.PREFIX} annotations but no {Annotations.PREFIX}{Annotations.AGGREGATE}"
                )
            return None

        fields = []
        for statement in node.body:
            if not isinstance(statement, ast.AnnAssign) or not isinstance(statement.target, ast.Name):
                continue
            descriptor = self._parse_field(node.name, statement, context)
            if descriptor is not None:
                fields.append(descriptor)

        logger.debug(f"Found aggregate {node.name} with {len(fields)} field(s) in {context.file_path}")
        return AggregateDescriptor(
            name=node.name,
            fields=tuple(fields),
            annotations=aggregate_annotations,
            source_path=context.file_path,
            module_name=module_name,
        )

    def _parse_field(
        self, aggregate_name: str, statement: ast.AnnAssign, context: "_SourceContext"
    ) -> Optional[FieldDescriptor]:
        name = statement.target.id
        try:
            parsed_type = parse_type(statement.annotation)
        except ValueError as e:
            raise IngestionError(
                str(e),
                file_path=context.file_path,
                aggregate=aggregate_name,
                field=name,
                line=statement.lineno,
            ) from None

        if parsed_type is None:
            return None
        semantic_type, is_optional, is_repeated = parsed_type

        annotations = context.annotations_above(statement.lineno, Annotations.FIELD_TAGS)
        end_line = getattr(statement, "end_lineno", None) or statement.lineno
        annotations += context.trailing_annotations(statement.lineno, end_line, Annotations.FIELD_TAGS)

        field_annotations, column = build_field_annotations(
            annotations,
            default_ref_target=reference_target_name(name),
            file_path=context.file_path,
        )

        return FieldDescriptor(
            name=name,
            semantic_type=semantic_type,
            is_optional=is_optional,
            is_repeated=is_repeated,
            persisted_name=column or "",
            annotations=field_annotations,
        )


class _SourceContext:
    """Comment lookup for one source file."""

    def __init__(self, source: str, file_path: str):
        self.file_path = file_path
        self.lines = source.splitlines()
        self.comments: Dict[int, str] = {}
        self.standalone: Dict[int, bool] = {}

        try:
            tokens = list(tokenize.generate_tokens(io.StringIO(source).readline))
        except (tokenize.TokenError, IndentationError) as e:
            raise IngestionError(f"Cannot tokenize model file: {e}", file_path=file_path) from e

        for token in tokens:
            if token.type != tokenize.COMMENT:
                continue
            line = token.start[0]
            self.comments[line] = token.string
            self.standalone[line] = self.lines[line - 1][:token.start[1]].strip() == ""

    def annotations_above(self, line: int, allowed) -> List[Annotation]:
        """Annotations from the contiguous comment-only lines right above ``line``."""
        collected: List[Tuple[int, str]] = []
        current = line - 1
        while current >= 1 and self.standalone.get(current):
            collected.append((current, self.comments[current]))
            current -= 1

        annotations = []
        for comment_line, text in reversed(collected):
            annotations.extend(parse_annotations(text, allowed, comment_line, self.file_path))
        return annotations

    def trailing_annotations(self, start: int, end: int, allowed) -> List[Annotation]:
        """Annotations from comments trailing code on lines ``start``..``end``."""
        annotations = []
        for line in range(start, end + 1):
            if line in self.comments and not self.standalone[line]:
                annotations.extend(parse_annotations(self.comments[line], allowed, line, self.file_path))
        return annotations


def _wrapper_name(node: ast.expr) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _is_none(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


def parse_type(node: ast.expr) -> Optional[Tuple[str, bool, bool]]:
    """
    Reduce a field annotation to (semantic type, is optional, is repeated).

    Returns:
        The parsed shape, or None for attributes that are not fields (ClassVar)

    Raises:
        ValueError: For annotation shapes that cannot be persisted
    """
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        try:
            node = ast.parse(node.value, mode="eval").body
        except SyntaxError:
            raise ValueError(f"Unparseable string annotation '{node.value}'") from None

    if isinstance(node, (ast.Name, ast.Attribute)):
        return _wrapper_name(node), False, False

    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        members = [node.left, node.right]
        return _parse_union(members)

    if isinstance(node, ast.Subscript):
        wrapper = _wrapper_name(node.value)
        argument = node.slice

        if wrapper in SKIPPED_WRAPPERS:
            return None
        if wrapper in OPTIONAL_WRAPPERS:
            inner = parse_type(argument)
            if inner is None:
                raise ValueError("ClassVar cannot be optional")
            return inner[0], True, inner[2]
        if wrapper in UNION_WRAPPERS:
            members = list(argument.elts) if isinstance(argument, ast.Tuple) else [argument]
            return _parse_union(members)
        if wrapper in REPEATED_WRAPPERS:
            inner = parse_type(argument)
            if inner is None or inner[2]:
                raise ValueError("Nested collections are not supported")
            return inner[0], False, True

        raise ValueError(f"Unsupported type annotation '{ast.unparse(node)}'")

    raise ValueError(f"Unsupported type annotation '{ast.unparse(node)}'")


def _parse_union(members: List[ast.expr]) -> Tuple[str, bool, bool]:
    """Only ``X | None`` style unions are supported."""
    flattened: List[ast.expr] = []
    for member in members:
        if isinstance(member, ast.BinOp) and isinstance(member.op, ast.BitOr):
            flattened.extend([member.left, member.right])
        else:
            flattened.append(member)

    non_none = [m for m in flattened if not _is_none(m)]
    if len(non_none) != 1:
        raise ValueError("Only unions of a single type with None are supported")

    inner = parse_type(non_none[0])
    if inner is None:
        raise ValueError("ClassVar cannot be part of a union")
    has_none = len(non_none) != len(flattened)
    return inner[0], has_none or inner[1], inner[2]
