"""
karma: hot-reloadable slash commands for discord.py.

Commands live as Python files in a directory; a :class:`ComponentRegistry`
loads them, reloads them when they change and hands them to
:class:`~karma.clients.disc.KarmaClient` for dispatch.
"""

from .command import Command, command_name
from .context import Context
from .permissions import PermissionResolvable
from .registry import ComponentRegistry
from .schema import SchemaBuilder, get_autocompleter, get_executor, schema_changed, serialize

__all__ = [
    "Command",
    "ComponentRegistry",
    "Context",
    "PermissionResolvable",
    "SchemaBuilder",
    "command_name",
    "get_autocompleter",
    "get_executor",
    "schema_changed",
    "serialize",
]
