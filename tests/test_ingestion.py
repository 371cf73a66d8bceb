"""
Tests for reading annotated Python model modules
"""

import ast
from unittest import TestCase

import pytest

from ddd_auto_generator.exceptions import IngestionError
from ddd_auto_generator.ingestion import ModelParser, parse_type


def parse_expr(source):
    return parse_type(ast.parse(source, mode="eval").body)


class TestParseType(TestCase):
    """Test cases for parse_type"""

    def test_plain_types(self):
        assert parse_expr("int") == ("int", False, False)
        assert parse_expr("decimal.Decimal") == ("Decimal", False, False)
        assert parse_expr("'OrderItem'") == ("OrderItem", False, False)

    def test_optional_forms(self):
        assert parse_expr("Optional[int]") == ("int", True, False)
        assert parse_expr("typing.Optional[str]") == ("str", True, False)
        assert parse_expr("int | None") == ("int", True, False)
        assert parse_expr("None | datetime") == ("datetime", True, False)
        assert parse_expr("Union[None, str]") == ("str", True, False)

    def test_collections(self):
        assert parse_expr("List[str]") == ("str", False, True)
        assert parse_expr("list[int]") == ("int", False, True)
        assert parse_expr("typing.List['OrderItem']") == ("OrderItem", False, True)
        assert parse_expr("Optional[List[int]]") == ("int", True, True)
        assert parse_expr("Set[UUID]") == ("UUID", False, True)

    def test_class_variables_are_not_fields(self):
        assert parse_expr("ClassVar[int]") is None

    def test_unsupported_shapes(self):
        for source in ("Dict[str, int]", "Union[int, str]", "List[List[int]]", "int | str", "Callable[[], int]"):
            with self.assertRaises(ValueError, msg=source):
                parse_expr(source)


class TestModelParser(TestCase):
    """Test cases for ModelParser.parse_source"""

    def setUp(self):
        self.parser = ModelParser()

    def parse(self, source):
        return self.parser.parse_source(source, "/model/shop.py", "shop")

    def test_aggregate_annotations_above_decorators(self):
        [aggregate] = self.parse(
            "# +ddd:aggregate\n"
            "# +ddd:baseEntity\n"
            "# +ddd:ref(User, Group)\n"
            "@dataclass\n"
            "class Role:\n"
            "    id: int\n"
        )

        assert aggregate.name == "Role"
        assert aggregate.annotations.base_entity_trait == "BaseEntity"
        assert aggregate.annotations.outward_refs == ("User", "Group")
        assert aggregate.source_path == "/model/shop.py"
        assert aggregate.module_name == "shop"

    def test_field_annotations_trailing_and_above(self):
        [aggregate] = self.parse(
            "# +ddd:aggregate\n"
            "class Order:\n"
            "    id: int  # +ddd:id\n"
            "    # +ddd:index\n"
            "    # +ddd:column(placed_on)\n"
            "    placed_at: Optional[datetime] = None\n"
            "    customer_id: int  # +ddd:ref\n"
            "    tags: List[str] = None\n"
        )

        id_field, placed_at, customer_id, tags = aggregate.fields
        assert id_field.annotations.identity
        assert placed_at.annotations.indexed
        assert placed_at.is_optional
        assert placed_at.persisted_name == "placed_on"
        assert customer_id.annotations.outward_ref == "Customer"
        assert not customer_id.annotations.indexed
        assert tags.is_repeated
        assert tags.annotations == type(tags.annotations)()

    def test_multi_line_field_with_trailing_annotation(self):
        [aggregate] = self.parse(
            "# +ddd:aggregate\n"
            "class Order:\n"
            "    id: int\n"
            "    status: str = (  # +ddd:enum(NEW, PAID)\n"
            "        'NEW'\n"
            "    )\n"
        )
        assert aggregate.get_field("status").annotations.enum_values == ("NEW", "PAID")

    def test_classes_without_aggregate_tag_are_skipped(self):
        aggregates = self.parse(
            "class Helper:\n"
            "    id: int\n"
            "\n"
            "\n"
            "# +ddd:aggregate\n"
            "\n"
            "class Detached:\n"
            "    id: int\n"
        )
        assert aggregates == []

    def test_annotations_without_aggregate_tag_warn(self):
        with self.assertLogs("ddd_auto_generator.ingestion", level="WARNING") as logs:
            aggregates = self.parse(
                "# +ddd:ref(User)\n"
                "class Role:\n"
                "    id: int\n"
            )
        assert aggregates == []
        assert "Role" in logs.output[0]

    def test_non_field_members_are_ignored(self):
        [aggregate] = self.parse(
            "# +ddd:aggregate\n"
            "class Order:\n"
            "    '''An order.'''\n"
            "    TABLE: ClassVar[str] = 'orders'\n"
            "    LIMIT = 10\n"
            "    id: int\n"
            "\n"
            "    def total(self):\n"
            "        return 0\n"
        )
        assert [f.name for f in aggregate.fields] == ["id"]

    def test_unknown_annotation(self):
        with self.assertRaises(IngestionError) as ctx:
            self.parse(
                "# +ddd:aggregate\n"
                "class Order:\n"
                "    id: int  # +ddd:primary\n"
            )
        assert ctx.exception.context["line"] == 3

    def test_unsupported_field_type(self):
        with self.assertRaises(IngestionError) as ctx:
            self.parse(
                "# +ddd:aggregate\n"
                "class Order:\n"
                "    id: int\n"
                "    attributes: Dict[str, str]\n"
            )
        assert ctx.exception.context["aggregate"] == "Order"
        assert ctx.exception.context["field"] == "attributes"

    def test_syntax_error(self):
        with self.assertRaises(IngestionError) as ctx:
            self.parse("class Order(:\n    id: int\n")
        assert ctx.exception.error_code == "INGESTION_ERROR"

    def test_generated_section_is_ignored(self):
        aggregates = self.parse(
            "# +ddd:aggregate\n"
            "class Order:\n"
            "    id: int\n"
            "\n"
            "\n"
            "# +ddd:generated entity traits (do not edit below this line)\n"
            "def _order_get_id(self):\n"
            "    return self.id\n"
            "\n"
            "\n"
            "Order.get_id = _order_get_id\n"
        )
        assert [a.name for a in aggregates] == ["Order"]


def test_parse_directory(model_dir):
    aggregates = ModelParser().parse_directory(model_dir)

    # Files are visited in sorted order: customer, identity, order
    assert [a.name for a in aggregates] == ["Customer", "Role", "User", "Order", "OrderItem"]

    order = next(a for a in aggregates if a.name == "Order")
    assert order.source_path == str((model_dir / "order.py").resolve())
    assert order.module_name == "order"
    assert order.id_field.name == "OrderID"

    fields = {f.name: f for f in order.fields}
    assert fields["order_no"].annotations.unique
    assert fields["order_no"].annotations.required
    assert fields["customer_id"].annotations.outward_ref == "Customer"
    assert fields["warehouse_id"].annotations.outward_ref == "Warehouse"
    assert fields["warehouse_id"].is_optional
    assert fields["status"].annotations.enum_values == ("PENDING", "PAID", "SHIPPED")
    assert fields["placed_at"].annotations.indexed
    assert fields["items"].is_repeated
    assert fields["items"].semantic_type == "OrderItem"
    assert fields["items"].annotations.is_associated_entity
    assert fields["shipping"].annotations.is_value_object
    assert fields["shipping"].annotations.value_object_strategy == "json"

    user = next(a for a in aggregates if a.name == "User")
    assert user.get_field("name").persisted_name == "display_name"


def test_parse_directory_nested_modules(tmp_path):
    package = tmp_path / "model" / "sales"
    package.mkdir(parents=True)
    (package / "__init__.py").write_text("# +ddd:aggregate\nclass Region:\n    id: int\n", encoding="utf-8")
    (package / "invoice.py").write_text("# +ddd:aggregate\nclass Invoice:\n    id: int\n", encoding="utf-8")

    modules = {a.name: a.module_name for a in ModelParser().parse_directory(tmp_path / "model")}
    assert modules == {"Region": "sales", "Invoice": "sales.invoice"}


def test_parse_directory_missing(tmp_path):
    with pytest.raises(IngestionError):
        ModelParser().parse_directory(tmp_path / "nowhere")
