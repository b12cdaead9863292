"""
Command schema tree.

A command is a :class:`Root` whose ``options`` hold :class:`Group`,
:class:`Subcommand` and/or :class:`Primitive` nodes. Nodes own their children
outright and carry no reference to their parent; the builder tracks parents
separately while the tree is being assembled.

The platform rejects a root that mixes primitive options with groups or
subcommands. That is left to the command author and not checked here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Tuple, Union

from discord import AppCommandOptionType

if TYPE_CHECKING:
    from karma.permissions import PermissionResolvable

# handler(context, options); predictor(interaction, client)
Handler = Callable[..., Union[Awaitable[None], None]]
Predictor = Callable[..., Union[Awaitable[None], None]]

PRIMITIVE_KINDS = frozenset(
    {
        AppCommandOptionType.string,
        AppCommandOptionType.integer,
        AppCommandOptionType.number,
        AppCommandOptionType.boolean,
        AppCommandOptionType.user,
        AppCommandOptionType.role,
        AppCommandOptionType.channel,
        AppCommandOptionType.mentionable,
        AppCommandOptionType.attachment,
    }
)
NUMERIC_KINDS = frozenset({AppCommandOptionType.integer, AppCommandOptionType.number})
CHOICE_KINDS = NUMERIC_KINDS | {AppCommandOptionType.string}
PREDICTABLE_KINDS = CHOICE_KINDS


@dataclass(slots=True)
class Primitive:
    """Typed leaf option."""

    name: str
    description: str
    kind: AppCommandOptionType
    required: bool = False
    choices: Tuple[Dict[str, Any], ...] | None = None
    min_value: float | None = None
    max_value: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    channel_types: Tuple[int, ...] | None = None
    predictor: Predictor | None = None
    handler: Handler | None = None

    @property
    def autocomplete(self) -> bool:
        return self.predictor is not None


@dataclass(slots=True)
class Subcommand:
    name: str
    description: str
    options: List[Primitive] = field(default_factory=list)
    handler: Handler | None = None


@dataclass(slots=True)
class Group:
    name: str
    description: str
    options: List[Subcommand] = field(default_factory=list)


@dataclass(slots=True)
class Root:
    name: str
    description: str
    category: str = "uncategorized"
    nsfw: bool = False
    permissions: List["PermissionResolvable"] = field(default_factory=list)
    options: List[Union[Group, Subcommand, Primitive]] = field(default_factory=list)
    handler: Handler | None = None


Composite = Union[Root, Group, Subcommand]
Node = Union[Root, Group, Subcommand, Primitive]


__all__ = [
    "CHOICE_KINDS",
    "Composite",
    "Group",
    "Handler",
    "Node",
    "NUMERIC_KINDS",
    "PREDICTABLE_KINDS",
    "PRIMITIVE_KINDS",
    "Predictor",
    "Primitive",
    "Root",
    "Subcommand",
]
