"""
DDD Auto Generator.

Reads an annotated domain model, infers the relations between its aggregates
and generates persistence objects, convertors, query fields, repositories,
domain services and schema DDL for it.
"""

__version__ = "0.1.0"
