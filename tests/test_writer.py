"""
Tests for artifact writers and per-path locking
"""

from ddd_auto_generator.codegen.writer import FileSystemWriter, MemoryWriter, PathLockRegistry
from ddd_auto_generator.domain.models import Artifact


def test_file_system_writer_creates_directories(tmp_path):
    writer = FileSystemWriter(tmp_path / "out")

    written = writer.write(Artifact("infrastructure/po/order_po.py", "x = 1\n"))

    target = tmp_path / "out" / "infrastructure" / "po" / "order_po.py"
    assert written == str(target)
    assert target.read_text(encoding="utf-8") == "x = 1\n"


def test_file_system_writer_keeps_absolute_paths(tmp_path):
    model_file = tmp_path / "model" / "order.py"
    model_file.parent.mkdir()
    model_file.write_text("old\n", encoding="utf-8")

    FileSystemWriter(tmp_path / "out").write(Artifact(str(model_file), "new\n"))

    assert model_file.read_text(encoding="utf-8") == "new\n"
    assert not (tmp_path / "out").exists()


def test_file_system_writer_does_not_translate_newlines(tmp_path):
    writer = FileSystemWriter(tmp_path)
    writer.write(Artifact("a.py", "x = 1\n"))

    assert (tmp_path / "a.py").read_bytes() == b"x = 1\n"


def test_memory_writer():
    writer = MemoryWriter()

    assert writer.write(Artifact("sql/schema.sql", "-- empty\n")) == "sql/schema.sql"
    assert writer.get("sql/schema.sql") == "-- empty\n"
    assert writer.get("missing.py") is None
    assert list(writer.files) == ["sql/schema.sql"]


def test_path_locks_are_shared_per_normalized_path(tmp_path):
    locks = PathLockRegistry()

    first = locks.lock_for(tmp_path / "model" / "order.py")
    same = locks.lock_for(str(tmp_path / "model" / "sub" / ".." / "order.py"))
    other = locks.lock_for(tmp_path / "model" / "customer.py")

    assert first is same
    assert first is not other
