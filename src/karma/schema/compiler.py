"""
Compile command trees into Discord application-command payloads.

The output is plain JSON-compatible data. Two serializations of equal trees
are always equal, so ``schema_changed`` can detect drift across a hot reload
with a structural comparison alone.
"""

from __future__ import annotations

from typing import Any, Dict

from discord import AppCommandOptionType, AppCommandType

from karma.permissions import permission_bits

from .nodes import Group, Node, Primitive, Root, Subcommand

_PRIMITIVE_FIELDS = (
    "choices",
    "min_value",
    "max_value",
    "min_length",
    "max_length",
    "channel_types",
)


def _primitive(node: Primitive) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "name": node.name,
        "description": node.description,
        "type": node.kind.value,
        "required": node.required,
    }
    for key in _PRIMITIVE_FIELDS:
        value = getattr(node, key)
        if value is None:
            continue
        if key == "choices":
            value = [dict(choice) for choice in value]
        elif key == "channel_types":
            value = list(value)
        record[key] = value
    if node.autocomplete:
        record["autocomplete"] = True
    return record


def serialize(node: Node) -> Dict[str, Any]:
    """Return the wire description for ``node`` and its descendants."""

    match node:
        case Root():
            record: Dict[str, Any] = {
                "name": node.name,
                "description": node.description,
                "nsfw": node.nsfw,
                "type": AppCommandType.chat_input.value,
                "options": [serialize(child) for child in node.options],
            }
            bits = permission_bits(node.permissions)
            if bits is not None:
                # Decimal string so large bitmasks compare and transmit exactly.
                record["default_member_permissions"] = str(bits)
            return record
        case Group():
            return {
                "name": node.name,
                "description": node.description,
                "type": AppCommandOptionType.subcommand_group.value,
                "options": [serialize(child) for child in node.options],
            }
        case Subcommand():
            return {
                "name": node.name,
                "description": node.description,
                "type": AppCommandOptionType.subcommand.value,
                "options": [serialize(child) for child in node.options],
            }
        case Primitive():
            return _primitive(node)
        case _:
            raise TypeError(f"Unknown schema node {type(node).__name__}")


def schema_changed(old: Dict[str, Any] | None, new: Dict[str, Any]) -> bool:
    """Return ``True`` when two serialized schemas differ."""

    return old != new


__all__ = ["serialize", "schema_changed"]
