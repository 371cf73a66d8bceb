"""
Naming convention utilities for DDD Auto Generator.

This module provides the conversions between aggregate names, field names,
column names, table names and generated Python identifiers.
"""

import logging
import re

import inflect

from ..constants import FieldNames


logger = logging.getLogger(__name__)

# Initialize inflect engine for pluralization
p = inflect.engine()

# Splits "OrderCategory" into ("Order", "Category")
PASCAL_TAIL_PATTERN = re.compile(r"^(.*?)([A-Z][a-z]+)$")


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase or PascalCase to snake_case, keeping acronyms together.

    Used for field and column names.

    Example:
        >>> to_snake_case("OrderNo")
        'order_no'
        >>> to_snake_case("OrderID")
        'order_id'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")

    name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    name = re.sub("__([A-Z])", r"_\1", name)
    name = re.sub("([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.lower()


def to_lower_snake(name: str) -> str:
    """
    Canonical lower-snake form of an aggregate name.

    An underscore goes before every uppercase letter that is not in first
    position, then the whole name is lowercased. Table names, junction
    names and foreign key columns are all built from this form.

    Example:
        >>> to_lower_snake("OrderItem")
        'order_item'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")
    return re.sub(r"(?<!^)([A-Z])", r"_\1", name).lower()


def to_pascal_case(name: str) -> str:
    """
    Convert snake_case (or already Pascal/camel) names to PascalCase.

    Example:
        >>> to_pascal_case("status")
        'Status'
        >>> to_pascal_case("payment_state")
        'PaymentState'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")
    return "".join(word[:1].upper() + word[1:] for word in name.split("_") if word)


def reference_target_name(field_name: str) -> str:
    """
    Guess the referenced aggregate from a reference field name.

    Example:
        >>> reference_target_name("customer_id")
        'Customer'
        >>> reference_target_name("UserID")
        'User'
    """
    for suffix in FieldNames.IDENTITY_SUFFIXES:
        if field_name.endswith(suffix) and len(field_name) > len(suffix):
            field_name = field_name[:-len(suffix)]
            break
    return to_pascal_case(to_snake_case(field_name))


def junction_table_name(left: str, right: str) -> str:
    """Junction table name for a canonically ordered aggregate pair."""
    return f"{to_lower_snake(left)}_{to_lower_snake(right)}"


def foreign_key_column(aggregate_name: str, prefix: str = "") -> str:
    """Foreign key column pointing at an aggregate, e.g. ``role_id``."""
    return f"{prefix}{to_lower_snake(aggregate_name)}_id"


def enum_member_name(value: str) -> str:
    """
    Turn an enum value into a valid UPPER_SNAKE member name.

    Example:
        >>> enum_member_name("in-progress")
        'IN_PROGRESS'
    """
    member = re.sub(r"\W", "_", to_snake_case(value.strip())).upper()
    member = re.sub("_+", "_", member).strip("_")
    if not member or not (member[0].isalpha() or member[0] == "_"):
        member = f"V_{member}"
    return member


def pluralize(word: str) -> str:
    """
    Pluralize a word with inflect, falling back to a trailing 's'.

    Only the last word of a PascalCase name is pluralized, in lower case,
    since inflect leaves capitalized words (proper nouns) alone.

    Example:
        >>> pluralize("OrderCategory")
        'OrderCategories'
    """
    if not isinstance(word, str) or not word:
        return ""

    match = PASCAL_TAIL_PATTERN.match(word)
    if match:
        head, tail = match.groups()
        plural_tail = pluralize(tail.lower())
        return head + plural_tail[:1].upper() + plural_tail[1:]

    try:
        plural = p.plural(word)
        if plural:
            return plural
        return word + "s"
    except Exception as e:
        logger.error(f"Inflect pluralization failed for '{word}': {e}. Falling back to adding 's'.")
        return word + "s"


def validate_python_identifier(name: str) -> bool:
    """Check if a string is a valid Python identifier and not a keyword."""
    if not name:
        return False
    return name.isidentifier() and name not in FieldNames.PYTHON_KEYWORDS
