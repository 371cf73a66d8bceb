"""
Annotation parsing for DDD Auto Generator.

Model comments carry ``+ddd:<tag>`` or ``+ddd:<tag>(<argument>)`` markers.
They are parsed in two steps: first every marker becomes an ``Annotation``
(tag, argument, line), then the tags are folded into the closed
``FieldAnnotations`` / ``AggregateAnnotations`` records. Anything outside the
known vocabulary is rejected so a typo never silently changes the output.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from ..constants import Annotations, ValueObjectStrategies
from ..exceptions import IngestionError
from .models import AggregateAnnotations, FieldAnnotations


logger = logging.getLogger(__name__)

_ANNOTATION_PATTERN = re.compile(r"\+ddd:([A-Za-z_]\w*)(?:\(([^)]*)\))?")


@dataclass(frozen=True)
class Annotation:
    """One parsed ``+ddd:`` marker."""

    tag: str
    argument: Optional[str] = None
    line: Optional[int] = None


def parse_annotations(
    comment: str,
    allowed: Set[str],
    line: Optional[int] = None,
    file_path: Optional[str] = None,
) -> List[Annotation]:
    """
    Parse every ``+ddd:`` marker in a comment.

    Args:
        comment: Raw comment text (with or without the leading ``#``)
        allowed: Tags accepted at this position
        line: Source line of the comment, for error reporting
        file_path: Source file of the comment, for error reporting

    Returns:
        Parsed annotations in the order they appear

    Raises:
        IngestionError: If a tag is not part of the accepted vocabulary
    """
    parsed = []
    for match in _ANNOTATION_PATTERN.finditer(comment):
        tag, argument = match.group(1), match.group(2)
        if tag not in allowed:
            raise IngestionError(
                f"Unknown annotation '{Annotations.PREFIX}{tag}'",
                file_path=file_path,
                line=line,
                suggestions=[f"Allowed here: {', '.join(sorted(allowed))}"],
            )
        if argument is not None:
            argument = argument.strip()
        parsed.append(Annotation(tag=tag, argument=argument or None, line=line))
    return parsed


def _split_values(argument: Optional[str]) -> Tuple[str, ...]:
    if not argument:
        return ()
    values = []
    for raw in argument.split(","):
        value = raw.strip().strip("'\"").strip()
        if value:
            values.append(value)
    return tuple(values)


def _value_object_strategy(argument: Optional[str], file_path: Optional[str], line: Optional[int]) -> str:
    if not argument:
        return ValueObjectStrategies.DEFAULT
    strategy = argument.split("=", 1)[-1].strip().strip("'\"").lower()
    if strategy not in ValueObjectStrategies.ALL:
        raise IngestionError(
            f"Unknown value object strategy '{strategy}'",
            file_path=file_path,
            line=line,
            suggestions=[f"Use one of: {', '.join(ValueObjectStrategies.ALL)}"],
        )
    return strategy


def build_aggregate_annotations(annotations: Iterable[Annotation]) -> Tuple[bool, AggregateAnnotations]:
    """
    Fold aggregate-level markers into an ``AggregateAnnotations``.

    Returns:
        Tuple of (declared as aggregate, folded annotations)
    """
    is_aggregate = False
    base_entity_trait = None
    is_junction = False
    refs: List[str] = []

    for annotation in annotations:
        if annotation.tag == Annotations.AGGREGATE:
            is_aggregate = True
        elif annotation.tag == Annotations.BASE_ENTITY:
            base_entity_trait = annotation.argument or "BaseEntity"
        elif annotation.tag == Annotations.MANY_TO_MANY:
            is_junction = True
        elif annotation.tag == Annotations.REF:
            for target in _split_values(annotation.argument):
                if target not in refs:
                    refs.append(target)

    return is_aggregate, AggregateAnnotations(
        base_entity_trait=base_entity_trait,
        is_junction_aggregate=is_junction,
        outward_refs=tuple(refs),
    )


def build_field_annotations(
    annotations: Iterable[Annotation],
    default_ref_target: Optional[str] = None,
    file_path: Optional[str] = None,
) -> Tuple[FieldAnnotations, Optional[str]]:
    """
    Fold field-level markers into a ``FieldAnnotations``.

    Args:
        annotations: Parsed markers attached to the field
        default_ref_target: Target used by a bare ``+ddd:ref``
        file_path: Source file, for error reporting

    Returns:
        Tuple of (folded annotations, explicit column name or None)
    """
    values = {}
    column = None
    enum_values: List[str] = []

    for annotation in annotations:
        tag = annotation.tag
        if tag == Annotations.ID:
            values["identity"] = True
        elif tag == Annotations.UNIQUE:
            values["unique"] = True
        elif tag == Annotations.REQUIRED:
            values["required"] = True
        elif tag == Annotations.ENTITY:
            values["is_associated_entity"] = True
        elif tag == Annotations.INDEX:
            values["indexed"] = True
        elif tag == Annotations.REF:
            values["outward_ref"] = annotation.argument or default_ref_target
        elif tag == Annotations.VALUE_OBJECT:
            values["is_value_object"] = True
            values["value_object_strategy"] = _value_object_strategy(
                annotation.argument, file_path, annotation.line
            )
        elif tag == Annotations.ENUM:
            for value in _split_values(annotation.argument):
                if value not in enum_values:
                    enum_values.append(value)
        elif tag == Annotations.COLUMN:
            column = annotation.argument

    if enum_values:
        values["enum_values"] = tuple(enum_values)

    return FieldAnnotations(**values), column
