"""
Resolve an invocation's option payload against a command tree.

``options`` is the raw ``data["options"]`` list Discord sends with an
interaction: each entry has a ``name`` and ``type`` and either a ``value``,
nested ``options`` (subcommands and groups) or ``focused`` (autocomplete).
Entries are trusted as-is; nothing here type-checks values or raises.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence

from discord import AppCommandOptionType

from .nodes import PREDICTABLE_KINDS, Group, Handler, Node, Predictor, Primitive, Root, Subcommand

OptionPath = Sequence[Mapping[str, Any]]

_NESTED_TYPES = frozenset(
    {AppCommandOptionType.subcommand.value, AppCommandOptionType.subcommand_group.value}
)


def _type_code(entry: Mapping[str, Any]) -> int | None:
    raw = entry.get("type")
    return getattr(raw, "value", raw)


def _match(entry: Mapping[str, Any], nodes: Sequence[Node]) -> Node | None:
    name = entry.get("name")
    for node in nodes:
        if node.name == name:
            return node
    return None


def _nested(entry: Mapping[str, Any]) -> OptionPath | None:
    if _type_code(entry) not in _NESTED_TYPES:
        return None
    return entry.get("options") or None


def get_executor(root: Root, options: OptionPath | None) -> List[Handler] | None:
    """
    Return the handlers to run for an invocation, innermost first.

    The root's own handler always comes last. ``None`` means nothing along the
    path has a handler.
    """

    handlers: List[Handler] = [] if root.handler is None else [root.handler]

    def walk(entries: OptionPath, nodes: Sequence[Node]) -> None:
        for entry in entries:
            node = _match(entry, nodes)
            match node:
                case Group():
                    nested = _nested(entry)
                    if nested:
                        walk(nested, node.options)
                case Subcommand():
                    if node.handler is not None:
                        handlers.insert(0, node.handler)
                    nested = _nested(entry)
                    if nested:
                        walk(nested, node.options)
                case Primitive():
                    if node.handler is not None:
                        handlers.insert(0, node.handler)
                case _:
                    continue

    walk(options or (), root.options)
    return handlers or None


def get_autocompleter(root: Root, options: OptionPath | None) -> Predictor | None:
    """
    Return the single predictor that should answer an autocomplete request.

    Predictors are collected innermost and latest first, the same order as
    :func:`get_executor`, and the first one wins. ``focused`` is not consulted.
    """

    found: List[Predictor] = []

    def walk(entries: OptionPath, nodes: Sequence[Node]) -> None:
        for entry in entries:
            node = _match(entry, nodes)
            match node:
                case Primitive(kind=kind) if kind in PREDICTABLE_KINDS:
                    if node.predictor is not None:
                        found.insert(0, node.predictor)
                case Group() | Subcommand():
                    nested = _nested(entry)
                    if nested:
                        walk(nested, node.options)
                case _:
                    continue

    walk(options or (), root.options)
    return found[0] if found else None


__all__ = ["OptionPath", "get_executor", "get_autocompleter"]
