"""
Shared fixtures for the DDD Auto Generator test suite.

The sample domain model is written into a temporary directory for every
test, because the entity trait splice rewrites the model files in place.
"""

from pathlib import Path

import pytest

from ddd_auto_generator.config import ToolConfigSchema
from ddd_auto_generator.domain.registry import Registry
from ddd_auto_generator.domain.relationships import RelationshipAnalyzer
from ddd_auto_generator.ingestion import ModelParser


ORDER_MODULE = '''\
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


# +ddd:aggregate
@dataclass
class Order:
    OrderID: int
    order_no: str  # +ddd:unique +ddd:required
    customer_id: int  # +ddd:ref
    warehouse_id: Optional[int] = None  # +ddd:ref(Warehouse)
    status: str = "PENDING"  # +ddd:enum(PENDING, PAID, SHIPPED)
    amount: Decimal = Decimal("0")
    # +ddd:index
    placed_at: Optional[datetime] = None
    items: List["OrderItem"] = field(default_factory=list)  # +ddd:entity
    shipping: Optional["Address"] = None  # +ddd:valueObject
    version: int = 0
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# +ddd:aggregate
@dataclass
class OrderItem:
    id: int
    order_id: int  # +ddd:ref(Order)
    sku: str  # +ddd:index
    quantity: int = 1
'''

CUSTOMER_MODULE = '''\
from dataclasses import dataclass
from typing import Optional


# A customer of the shop.
# +ddd:aggregate
@dataclass
class Customer:
    id: int
    name: str  # +ddd:required
    email: Optional[str] = None  # +ddd:unique


class CustomerView:
    """Read model, not an aggregate."""

    id: int
'''

IDENTITY_MODULE = '''\
from dataclasses import dataclass


# +ddd:aggregate
# +ddd:ref(User)
@dataclass
class Role:
    id: int
    name: str  # +ddd:unique


# +ddd:aggregate
# +ddd:ref(Role)
@dataclass
class User:
    id: int
    email: str  # +ddd:unique
    # +ddd:column(display_name)
    name: str
'''

SAMPLE_MODULES = {
    "order.py": ORDER_MODULE,
    "customer.py": CUSTOMER_MODULE,
    "identity.py": IDENTITY_MODULE,
}

SAMPLE_AGGREGATES = ["Customer", "Order", "OrderItem", "Role", "User"]


def write_modules(directory: Path, modules) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name, source in modules.items():
        (directory / name).write_text(source, encoding="utf-8")
    return directory


@pytest.fixture
def model_dir(tmp_path) -> Path:
    """A model directory holding the sample aggregates."""
    return write_modules(tmp_path / "model", SAMPLE_MODULES)


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "generated"


@pytest.fixture
def make_config(model_dir, output_dir):
    """Build a validated configuration for the sample model, with overrides."""

    def _make_config(**overrides) -> ToolConfigSchema:
        values = {
            "model_dir": str(model_dir),
            "output_dir": str(output_dir),
            "external_refs": ["Warehouse"],
            "workers": 2,
        }
        values.update(overrides)
        return ToolConfigSchema(**values)

    return _make_config


@pytest.fixture
def snapshot(model_dir):
    """A fully analyzed registry snapshot of the sample model."""
    registry = Registry()
    for aggregate in ModelParser().parse_directory(model_dir):
        registry.register(aggregate)

    analyzer = RelationshipAnalyzer(registry, external_refs=["Warehouse"])
    analyzer.analyze_relations()
    analyzer.generate_junction_tables()
    registry.collect_enums()
    return registry.snapshot()
