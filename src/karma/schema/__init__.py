"""Command schema trees: nodes, builder, wire compiler and dispatch resolver."""

from .builder import SchemaBuilder
from .compiler import schema_changed, serialize
from .nodes import Group, Handler, Node, Predictor, Primitive, Root, Subcommand
from .resolver import OptionPath, get_autocompleter, get_executor

__all__ = [
    "Group",
    "Handler",
    "Node",
    "OptionPath",
    "Predictor",
    "Primitive",
    "Root",
    "SchemaBuilder",
    "Subcommand",
    "get_autocompleter",
    "get_executor",
    "schema_changed",
    "serialize",
]
