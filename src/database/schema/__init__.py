"""Schema introspection modules."""

from .introspector import MySQLSchemaInspector

__all__ = [
    "MySQLSchemaInspector"
]
