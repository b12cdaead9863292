"""
Slash command components.

Command modules placed in the command directory subclass :class:`Command` and
build their schema in ``__init__`` so the registry can construct them without
arguments::

    from karma import Command

    class Echo(Command):
        def __init__(self) -> None:
            super().__init__(name="echo", description="Repeat something back")
            (
                self.schema()
                .interact(self.run)
                .string("text", "What to say").required().max_length(200)
            )

        async def run(self, context, options) -> None:
            await context.reply(context.get_option("text", required=True))

    COMPONENTS = [Echo]
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from karma.permissions import PermissionResolvable
from karma.schema import (
    Handler,
    OptionPath,
    Predictor,
    Root,
    SchemaBuilder,
    get_autocompleter,
    get_executor,
    serialize,
)


class Command:
    """Base class for every loadable slash command."""

    def __init__(
        self,
        *,
        name: str,
        description: str,
        category: str | None = None,
        nsfw: bool | None = None,
        permissions: Iterable[PermissionResolvable] | None = None,
    ) -> None:
        self.root = Root(name=name, description=description)
        if category is not None:
            self.root.category = category
        if nsfw is not None:
            self.root.nsfw = nsfw
        if permissions is not None:
            self.root.permissions = list(permissions)

    @property
    def name(self) -> str:
        return self.root.name

    @property
    def description(self) -> str:
        return self.root.description

    @property
    def category(self) -> str:
        return self.root.category

    @property
    def nsfw(self) -> bool:
        return self.root.nsfw

    @property
    def permissions(self) -> List[PermissionResolvable]:
        return self.root.permissions

    def schema(self) -> SchemaBuilder:
        """Return a builder positioned at this command's root."""

        return SchemaBuilder(self.root)

    def raw(self) -> Dict[str, Any]:
        """Wire description used to register the command with Discord."""

        return serialize(self.root)

    def get_executor(self, options: OptionPath | None) -> List[Handler] | None:
        return get_executor(self.root, options)

    def get_autocompleter(self, options: OptionPath | None) -> Predictor | None:
        return get_autocompleter(self.root, options)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


def command_name(command: Command) -> str:
    """Registry key for commands."""

    return command.name


__all__ = ["Command", "command_name"]
