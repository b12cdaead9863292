"""
Fluent construction of command schema trees.

The builder keeps a cursor over the tree being assembled. Every call that adds
a node appends it to the enclosing group, subcommand or root and moves the
cursor onto it; modifiers then apply to whatever node the cursor is on::

    (
        SchemaBuilder(root)
        .command("add", "Add a tag").interact(add_tag)
            .string("name", "Tag name").required().max_length(32)
            .string("alias", "Existing tag").predict(suggest_tags)
        .commit()
        .group("admin", "Administrative tools")
            .command("purge", "Delete every tag").interact(purge)
        .commit()
    )

A modifier that does not apply to the node under the cursor (bounds on a
boolean option, say) changes nothing and does not raise, so a chain never
breaks half way. Each such call is logged at DEBUG level and recorded in
:attr:`SchemaBuilder.ignored`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List

from discord import AppCommandOptionType

from .nodes import (
    CHOICE_KINDS,
    NUMERIC_KINDS,
    PREDICTABLE_KINDS,
    Group,
    Handler,
    Node,
    Predictor,
    Primitive,
    Root,
    Subcommand,
)

logger = logging.getLogger(__name__)


def _choice(value: Any) -> Dict[str, Any]:
    """Normalise a ``Choice``, mapping or ``(name, value)`` pair."""

    if isinstance(value, Mapping):
        return {"name": str(value["name"]), "value": value["value"]}
    if isinstance(value, tuple):
        name, val = value
        return {"name": str(name), "value": val}
    return {"name": str(value.name), "value": value.value}


def _channel_type(value: Any) -> int:
    return int(getattr(value, "value", value))


class SchemaBuilder:
    """Cursor-driven builder for one command tree."""

    def __init__(self, root: Root) -> None:
        self.root = root
        # Node arena; ``_parents[i]`` is the arena index of node i's parent.
        self._nodes: List[Node] = [root]
        self._parents: List[int | None] = [None]
        self._cursor = 0
        self.ignored: List[str] = []

    @property
    def current(self) -> Node:
        """The node modifiers currently apply to."""

        return self._nodes[self._cursor]

    # ------------------------------------------------------------------ #
    # Navigation
    # ------------------------------------------------------------------ #

    def _enclosing(self) -> int:
        """Arena index of the composite that new children attach to."""

        if isinstance(self._nodes[self._cursor], Primitive):
            return self._parents[self._cursor]
        return self._cursor

    def _append(self, parent_index: int, node: Node) -> SchemaBuilder:
        parent = self._nodes[parent_index]
        if any(child.name == node.name for child in parent.options):
            logger.warning(
                "Duplicate option %r under %r; dispatch will only reach the first",
                node.name,
                parent.name,
            )
        parent.options.append(node)
        self._nodes.append(node)
        self._parents.append(parent_index)
        self._cursor = len(self._nodes) - 1
        return self

    def _ignore(self, action: str) -> SchemaBuilder:
        node = self.current
        entry = f"{action} on {type(node).__name__} {node.name!r}"
        logger.debug("Ignoring %s", entry)
        self.ignored.append(entry)
        return self

    def commit(self) -> SchemaBuilder:
        """Move the cursor up to the enclosing group or root."""

        parent = self._parents[self._enclosing()]
        self._cursor = 0 if parent is None else parent
        return self

    # ------------------------------------------------------------------ #
    # Structure
    # ------------------------------------------------------------------ #

    def command(self, name: str, description: str) -> SchemaBuilder:
        index = self._enclosing()
        if isinstance(self._nodes[index], (Root, Group)):
            return self._append(index, Subcommand(name, description))
        return self._ignore(f"command({name!r})")

    def group(self, name: str, description: str) -> SchemaBuilder:
        index = self._enclosing()
        if isinstance(self._nodes[index], Root):
            return self._append(index, Group(name, description))
        return self._ignore(f"group({name!r})")

    def _primitive(self, kind: AppCommandOptionType, name: str, description: str) -> SchemaBuilder:
        index = self._enclosing()
        if isinstance(self._nodes[index], (Root, Subcommand)):
            return self._append(index, Primitive(name, description, kind))
        return self._ignore(f"{kind.name}({name!r})")

    def string(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.string, name, description)

    def integer(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.integer, name, description)

    def number(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.number, name, description)

    def boolean(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.boolean, name, description)

    def user(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.user, name, description)

    def role(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.role, name, description)

    def channel(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.channel, name, description)

    def mentionable(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.mentionable, name, description)

    def attachment(self, name: str, description: str) -> SchemaBuilder:
        return self._primitive(AppCommandOptionType.attachment, name, description)

    # ------------------------------------------------------------------ #
    # Modifiers
    # ------------------------------------------------------------------ #

    def _leaf(self, kinds: Iterable[AppCommandOptionType] | None = None) -> Primitive | None:
        node = self.current
        if not isinstance(node, Primitive):
            return None
        if kinds is not None and node.kind not in kinds:
            return None
        return node

    def required(self) -> SchemaBuilder:
        node = self._leaf()
        if node is None:
            return self._ignore("required()")
        node.required = True
        return self

    def choices(self, values: Iterable[Any]) -> SchemaBuilder:
        node = self._leaf(CHOICE_KINDS)
        if node is None:
            return self._ignore("choices()")
        node.choices = tuple(_choice(value) for value in values)
        return self

    def min_value(self, value: float) -> SchemaBuilder:
        node = self._leaf(NUMERIC_KINDS)
        if node is None:
            return self._ignore("min_value()")
        node.min_value = value
        return self

    def max_value(self, value: float) -> SchemaBuilder:
        node = self._leaf(NUMERIC_KINDS)
        if node is None:
            return self._ignore("max_value()")
        node.max_value = value
        return self

    def min_length(self, value: int) -> SchemaBuilder:
        node = self._leaf({AppCommandOptionType.string})
        if node is None:
            return self._ignore("min_length()")
        node.min_length = value
        return self

    def max_length(self, value: int) -> SchemaBuilder:
        node = self._leaf({AppCommandOptionType.string})
        if node is None:
            return self._ignore("max_length()")
        node.max_length = value
        return self

    def channel_types(self, values: Iterable[Any]) -> SchemaBuilder:
        node = self._leaf({AppCommandOptionType.channel})
        if node is None:
            return self._ignore("channel_types()")
        node.channel_types = tuple(_channel_type(value) for value in values)
        return self

    def interact(self, fn: Handler) -> SchemaBuilder:
        """Attach ``fn`` as the handler of the node under the cursor."""

        node = self.current
        if isinstance(node, Group):
            return self._ignore("interact()")
        node.handler = fn
        return self

    def predict(self, fn: Predictor) -> SchemaBuilder:
        """Attach an autocomplete predictor to a string/integer/number option."""

        node = self._leaf(PREDICTABLE_KINDS)
        if node is None:
            return self._ignore("predict()")
        node.predictor = fn
        return self


__all__ = ["SchemaBuilder"]
