"""
Tests for the two-phase generation orchestrator

These run the whole pipeline against the sample model in a temporary
directory, so they double as end-to-end tests of the generated tree.
"""

import logging
import threading
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

import pytest

from ddd_auto_generator.codegen import MemoryWriter
from ddd_auto_generator.codegen.convertors import ConvertorGenerator
from ddd_auto_generator.codegen.schema_ddl import SchemaDDLGenerator
from ddd_auto_generator.constants import ArtifactKinds, Splice
from ddd_auto_generator.exceptions import (
    GenerationError,
    RelationValidationFailed,
    SpliceError,
)
from ddd_auto_generator.orchestrator import (
    CANCELLED_ERROR_CODE,
    GenerationOrchestrator,
    GenerationSummary,
)


AGGREGATE_COUNT = 5
ARTIFACT_COUNT = len(ArtifactKinds.GLOBAL) + AGGREGATE_COUNT * len(ArtifactKinds.PER_AGGREGATE)

ORDER_FILES = [
    "infrastructure/po/order_po.py",
    "infrastructure/convertor/order_convertor.py",
    "infrastructure/query/order_fields.py",
    "domain/repository/order_repository.py",
    "infrastructure/repository/order_repository_impl.py",
    "domain/service/order_service.py",
    "domain/service/impl/order_service_impl.py",
]


def read_tree(root: Path):
    """Every file below ``root`` keyed by relative path, as bytes."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_full_run(make_config, model_dir, output_dir):
    summary = GenerationOrchestrator(make_config()).run()

    assert not summary.has_failures
    assert not summary.cancelled
    assert summary.validation_errors == []
    assert len(summary.written_paths) == ARTIFACT_COUNT
    assert summary.successes[ArtifactKinds.PERSISTED_OBJECT] == AGGREGATE_COUNT
    assert summary.successes[ArtifactKinds.SCHEMA_DDL] == 1

    for relative in ORDER_FILES + [
        "sql/schema.sql",
        "domain/enum/order_status.py",
        "infrastructure/query/field_types.py",
        "infrastructure/po/order_item_po.py",
        "infrastructure/po/role_po.py",
    ]:
        assert (output_dir / relative).is_file(), relative

    order_source = (model_dir / "order.py").read_text(encoding="utf-8")
    assert order_source.count(Splice.MARKER) == 1
    assert "Order.get_id = _order_get_id" in order_source
    assert "OrderItem.get_id = _order_item_get_id" in order_source


def test_runs_are_deterministic(make_config, model_dir, output_dir):
    GenerationOrchestrator(make_config()).run()
    first_output, first_model = read_tree(output_dir), read_tree(model_dir)

    GenerationOrchestrator(make_config(workers=4)).run()

    assert read_tree(output_dir) == first_output
    assert read_tree(model_dir) == first_model


def test_single_worker_matches_parallel_run(make_config, output_dir, tmp_path):
    GenerationOrchestrator(make_config(workers=1)).run()
    sequential = read_tree(output_dir)

    parallel_dir = tmp_path / "parallel"
    GenerationOrchestrator(make_config(workers=8, output_dir=str(parallel_dir))).run()

    assert read_tree(parallel_dir) == sequential


def test_failing_generator_is_isolated(make_config, output_dir):
    original = ConvertorGenerator.generate

    def failing(self, aggregate, snapshot):
        if aggregate.name == "Customer":
            raise RuntimeError("boom")
        return original(self, aggregate, snapshot)

    with patch.object(ConvertorGenerator, "generate", failing):
        summary = GenerationOrchestrator(make_config()).run()

    assert summary.has_failures
    assert summary.failures[ArtifactKinds.CONVERTOR] == 1
    [error] = summary.generation_errors
    assert error.aggregate == "Customer"
    assert error.artifact_kind == ArtifactKinds.CONVERTOR
    assert "boom" in error.message

    # Nothing is written for the failed artifact; its siblings still are
    assert not (output_dir / "infrastructure/convertor/customer_convertor.py").exists()
    assert (output_dir / "infrastructure/repository/customer_repository_impl.py").is_file()
    assert (output_dir / "infrastructure/convertor/order_convertor.py").is_file()
    assert len(summary.written_paths) == ARTIFACT_COUNT - 1


def test_failing_global_generator(make_config, output_dir):
    with patch.object(SchemaDDLGenerator, "generate", side_effect=RuntimeError("no schema")):
        summary = GenerationOrchestrator(make_config()).run()

    [error] = summary.generation_errors
    assert error.aggregate is None
    assert error.artifact_kind == ArtifactKinds.SCHEMA_DDL
    assert not (output_dir / "sql/schema.sql").exists()
    assert (output_dir / "infrastructure/po/order_po.py").is_file()


def test_strict_validation_stops_before_generation(make_config, output_dir):
    orchestrator = GenerationOrchestrator(make_config(external_refs=[]))

    with pytest.raises(RelationValidationFailed) as excinfo:
        orchestrator.prepare()

    [error] = excinfo.value.errors
    assert error.source_aggregate == "Order"
    assert error.target_aggregate == "Warehouse"
    assert error.field == "warehouse_id"
    assert not output_dir.exists()


def test_non_strict_validation_reports_and_continues(make_config, output_dir):
    summary = GenerationOrchestrator(make_config(external_refs=[], strict_relations=False)).run()

    [error] = summary.validation_errors
    assert error.target_aggregate == "Warehouse"
    assert not summary.has_failures
    assert (output_dir / "infrastructure/repository/order_repository_impl.py").is_file()


def test_cancelled_before_start(make_config, model_dir, output_dir):
    cancel_event = threading.Event()
    orchestrator = GenerationOrchestrator(make_config(), cancel_event=cancel_event)
    snapshot = orchestrator.prepare()
    original_model = read_tree(model_dir)

    orchestrator.cancel()
    summary = orchestrator.generate(snapshot)

    assert summary.cancelled
    assert summary.written_paths == []
    assert len(summary.errors) == ARTIFACT_COUNT
    assert all(e.error_code == CANCELLED_ERROR_CODE for e in summary.errors)
    assert not output_dir.exists()
    assert read_tree(model_dir) == original_model


def test_corrupted_marker_leaves_file_untouched(make_config, model_dir, output_dir):
    customer_file = model_dir / "customer.py"
    customer_file.write_text(
        customer_file.read_text(encoding="utf-8")
        + f"\n\n{Splice.MARKER}\n\n{Splice.MARKER}\n",
        encoding="utf-8",
    )
    before = customer_file.read_bytes()

    summary = GenerationOrchestrator(make_config()).run()

    [error] = summary.splice_errors
    assert isinstance(error, SpliceError)
    assert error.aggregate == "Customer"
    assert error.artifact_kind == ArtifactKinds.ENTITY_TRAITS
    assert summary.generation_errors == []
    assert customer_file.read_bytes() == before

    # The rest of the Customer artifacts and the other files are unaffected
    assert (output_dir / "infrastructure/po/customer_po.py").is_file()
    assert Splice.MARKER in (model_dir / "order.py").read_text(encoding="utf-8")


def test_dry_run_writes_nothing(make_config, model_dir, output_dir):
    original_model = read_tree(model_dir)
    writer = MemoryWriter()

    summary = GenerationOrchestrator(make_config(), writer=writer).run()

    assert not summary.has_failures
    assert "sql/schema.sql" in writer.files
    assert str((model_dir / "order.py").resolve()) in writer.files
    assert not output_dir.exists()
    assert read_tree(model_dir) == original_model


def test_include_aggregates(make_config, output_dir):
    summary = GenerationOrchestrator(make_config(include_aggregates=["Order"])).run()

    assert summary.successes[ArtifactKinds.PERSISTED_OBJECT] == 1
    assert (output_dir / "infrastructure/po/order_po.py").is_file()
    assert not (output_dir / "infrastructure/po/customer_po.py").exists()
    # The schema still covers the whole model
    assert '"customer"' in (output_dir / "sql/schema.sql").read_text(encoding="utf-8")


def test_exclude_aggregates(make_config, output_dir):
    GenerationOrchestrator(make_config(exclude_aggregates=["Role", "User"])).run()

    assert not (output_dir / "infrastructure/po/role_po.py").exists()
    assert (output_dir / "infrastructure/po/order_item_po.py").is_file()


def test_artifact_subset(make_config, model_dir, output_dir):
    original_model = read_tree(model_dir)

    summary = GenerationOrchestrator(make_config(artifacts=[ArtifactKinds.SCHEMA_DDL])).run()

    assert [Path(p).resolve() for p in summary.written_paths] == [(output_dir / "sql" / "schema.sql").resolve()]
    assert read_tree(model_dir) == original_model



BASKET_MODULE = '''\
from dataclasses import dataclass, field
from typing import List


# +ddd:aggregate
@dataclass
class Basket:
    orders: List["Order"] = field(default_factory=list)  # +ddd:entity
'''


def test_aggregate_without_columns_is_left_out_of_schema(make_config, model_dir, output_dir):
    (model_dir / "basket.py").write_text(BASKET_MODULE, encoding="utf-8")

    summary = GenerationOrchestrator(make_config(artifacts=[ArtifactKinds.SCHEMA_DDL])).run()

    [error] = summary.generation_errors
    assert error.aggregate == "Basket"
    assert error.artifact_kind == ArtifactKinds.SCHEMA_DDL
    assert summary.successes[ArtifactKinds.SCHEMA_DDL] == 1
    assert summary.failures[ArtifactKinds.SCHEMA_DDL] == 1

    schema = (output_dir / "sql/schema.sql").read_text(encoding="utf-8")
    assert 'CREATE TABLE IF NOT EXISTS "order"' in schema
    assert '"role_user"' in schema
    assert '"basket"' not in schema


def test_prepare_logs_aggregate_summaries(make_config, caplog):
    caplog.set_level(logging.INFO, logger="ddd_auto_generator.orchestrator")

    GenerationOrchestrator(make_config()).prepare()

    messages = [r.getMessage() for r in caplog.records if r.name == "ddd_auto_generator.orchestrator"]
    order = "Order: id=OrderID (int), traits=soft delete, optimistic lock, audit, unique=1, ref=2, required=1, entity=1"
    assert any(m.endswith(order) for m in messages)
    assert any(m.endswith("Customer: id=id (int), traits=none, unique=1, ref=0, required=1, entity=0") for m in messages)


class TestGenerationSummary(TestCase):
    """Test cases for GenerationSummary"""

    def test_failures_are_routed_by_type(self):
        summary = GenerationSummary()
        summary.record_failure(GenerationError("bad", artifact_kind="convertor", aggregate="Order"))
        summary.record_failure(SpliceError("dup", file_path="/m/order.py", artifact_kind="entity_traits"))

        assert len(summary.generation_errors) == 1
        assert len(summary.splice_errors) == 1
        assert len(summary.errors) == 2
        assert summary.failures == {"convertor": 1, "entity_traits": 1}
        assert summary.has_failures

    def test_successes(self):
        summary = GenerationSummary()
        summary.record_success("convertor", ["a.py"])
        summary.record_success("convertor", ["b.py"])

        assert summary.successes["convertor"] == 2
        assert summary.written_paths == ["a.py", "b.py"]
        assert not summary.has_failures

    def test_log(self):
        summary = GenerationSummary()
        summary.record_success("convertor", ["a.py"])
        summary.record_failure(GenerationError("bad", artifact_kind="convertor", aggregate="Order"))

        with self.assertLogs("ddd_auto_generator.orchestrator", level="INFO") as logs:
            summary.log()

        output = "\n".join(logs.output)
        assert "convertor" in output
        assert "Generation [Order/convertor]: bad" in output
