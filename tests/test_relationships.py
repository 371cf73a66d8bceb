"""
Tests for relation inference, junction synthesis and relation validation
"""

from unittest import TestCase

from ddd_auto_generator.domain.models import (
    AggregateAnnotations,
    AggregateDescriptor,
    FieldAnnotations,
    FieldDescriptor,
    JunctionKind,
    RelationKind,
)
from ddd_auto_generator.domain.registry import Registry
from ddd_auto_generator.domain.relationships import RelationshipAnalyzer


def aggregate(name, *fields, refs=(), junction=False, id_name="id"):
    return AggregateDescriptor(
        name=name,
        fields=(FieldDescriptor(id_name, "int"),) + tuple(fields),
        annotations=AggregateAnnotations(outward_refs=tuple(refs), is_junction_aggregate=junction),
    )


def ref_field(name, target, semantic_type="int"):
    return FieldDescriptor(name, semantic_type, annotations=FieldAnnotations(outward_ref=target))


def entity_field(name, target, repeated=False):
    return FieldDescriptor(
        name, target, is_repeated=repeated, annotations=FieldAnnotations(is_associated_entity=True)
    )


def analyze(*aggregates, external_refs=None):
    registry = Registry()
    for a in aggregates:
        registry.register(a)
    analyzer = RelationshipAnalyzer(registry, external_refs)
    analyzer.analyze_relations()
    analyzer.generate_junction_tables()
    return registry, analyzer


class TestFieldRelations(TestCase):
    """Test cases for relations declared by fields"""

    def test_reference_field(self):
        registry, _ = analyze(
            aggregate("Customer"),
            aggregate("Order", ref_field("customer_id", "Customer")),
        )

        [relation] = registry.get_relations_of("Order")
        assert relation.kind == RelationKind.REF
        assert relation.target == "Customer"
        assert relation.field_name == "customer_id"
        assert not relation.is_owner

    def test_entity_fields(self):
        registry, _ = analyze(
            aggregate("OrderItem"),
            aggregate("Invoice"),
            aggregate(
                "Order",
                entity_field("items", "OrderItem", repeated=True),
                entity_field("invoice", "Invoice"),
            ),
        )

        kinds = {r.field_name: (r.kind, r.target, r.is_owner) for r in registry.get_relations_of("Order")}
        assert kinds == {
            "items": (RelationKind.ONE_TO_MANY, "OrderItem", True),
            "invoice": (RelationKind.ONE_TO_ONE, "Invoice", True),
        }

    def test_reference_on_non_basic_type_is_ignored(self):
        with self.assertLogs("ddd_auto_generator.domain.relationships", level="WARNING"):
            registry, _ = analyze(
                aggregate("Customer"),
                aggregate("Order", ref_field("customer", "Customer", semantic_type="Customer")),
            )

        assert registry.get_relations_of("Order") == []


class TestManyToMany(TestCase):
    """Test cases for aggregate-level references and junction tables"""

    def test_mutual_references_make_one_junction(self):
        registry, _ = analyze(
            aggregate("User", refs=["Role"]),
            aggregate("Role", refs=["User"]),
        )

        many = [r for r in registry.get_relations() if r.kind == RelationKind.MANY_TO_MANY]
        assert len(many) == 1
        assert (many[0].source, many[0].target) == ("Role", "User")

        [junction] = registry.get_junctions()
        assert junction.table_name == "role_user"
        assert (junction.left_aggregate, junction.right_aggregate) == ("Role", "User")
        assert (junction.left_column, junction.right_column) == ("role_id", "user_id")
        assert (junction.left_id_field, junction.right_id_field) == ("id", "id")
        assert junction.kind == JunctionKind.PURE_ASSOCIATION

    def test_junction_points_at_persisted_id_column(self):
        registry, _ = analyze(
            aggregate("Role", refs=["User"], id_name="RoleID"),
            aggregate("User", refs=["Role"]),
        )

        [junction] = registry.get_junctions()
        assert junction.left_id_field == "role_id"

    def test_one_directional_reference_has_no_junction(self):
        registry, analyzer = analyze(
            aggregate("Role"),
            aggregate("User", refs=["Role"]),
        )

        assert registry.get_relations() == []
        assert registry.get_junctions() == []
        assert analyzer.validate_relations() == []

    def test_self_reference(self):
        registry, _ = analyze(aggregate("User", refs=["User"]))

        [junction] = registry.get_junctions()
        assert junction.table_name == "user_user"
        assert junction.left_column == "user_id"
        assert junction.right_column == "related_user_id"

    def test_business_aggregate_replaces_pure_junction(self):
        with self.assertLogs("ddd_auto_generator.domain.relationships", level="WARNING"):
            registry, _ = analyze(
                aggregate("Student", refs=["Course"]),
                aggregate("Course", refs=["Student"]),
                aggregate("Enrollment", refs=["Student", "Course"], junction=True),
            )

        [junction] = registry.get_junctions()
        assert junction.table_name == "enrollment"
        assert junction.kind == JunctionKind.BUSINESS_AGGREGATE
        assert (junction.left_column, junction.right_column) == ("course_id", "student_id")
        assert not junction.is_pure

    def test_business_aggregate_needs_two_targets(self):
        registry, _ = analyze(
            aggregate("Student"),
            aggregate("Enrollment", refs=["Student"], junction=True),
        )
        assert registry.get_junctions() == []

    def test_junctions_are_sorted(self):
        registry, _ = analyze(
            aggregate("User", refs=["Role", "Group"]),
            aggregate("Role", refs=["User"]),
            aggregate("Group", refs=["User"]),
        )
        assert [j.table_name for j in registry.get_junctions()] == ["group_user", "role_user"]


class TestValidateRelations(TestCase):
    """Test cases for relation validation"""

    def test_dangling_reference_is_reported_and_still_recorded(self):
        registry, analyzer = analyze(
            aggregate("Order", ref_field("warehouse_id", "Warehouse")),
        )

        # The relation exists even though its target does not
        assert [r.target for r in registry.get_relations_of("Order")] == ["Warehouse"]

        [error] = analyzer.validate_relations()
        assert error.source_aggregate == "Order"
        assert error.target_aggregate == "Warehouse"
        assert error.field == "warehouse_id"
        assert error.error_code == "RELATION_VALIDATION_ERROR"

    def test_external_reference_is_exempt(self):
        _, analyzer = analyze(
            aggregate("Order", ref_field("warehouse_id", "Warehouse")),
            external_refs=["Warehouse"],
        )
        assert analyzer.validate_relations() == []

    def test_external_list_does_not_cover_entities(self):
        _, analyzer = analyze(
            aggregate("Order", entity_field("items", "OrderItem", repeated=True)),
            external_refs=["OrderItem"],
        )
        [error] = analyzer.validate_relations()
        assert error.target_aggregate == "OrderItem"

    def test_unknown_aggregate_level_reference(self):
        registry, analyzer = analyze(aggregate("User", refs=["Group"]))

        assert registry.get_relations() == []
        [error] = analyzer.validate_relations()
        assert error.source_aggregate == "User"
        assert error.target_aggregate == "Group"

    def test_consistent_model(self):
        _, analyzer = analyze(
            aggregate("Customer"),
            aggregate("Order", ref_field("customer_id", "Customer")),
        )
        assert analyzer.validate_relations() == []
