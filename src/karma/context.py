"""Per-invocation context handed to command handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

import discord
from discord import app_commands

from karma.logs import OK
from karma.permissions import PermissionResolvable, satisfies
from karma.schema.resolver import OptionPath

if TYPE_CHECKING:
    from karma.clients.disc import KarmaClient

_NESTED_TYPES = {
    discord.AppCommandOptionType.subcommand.value,
    discord.AppCommandOptionType.subcommand_group.value,
}


def leaf_options(options: OptionPath) -> Iterator[Mapping[str, Any]]:
    """Yield the value-carrying entries below any subcommand/group entries."""

    for entry in options:
        if getattr(entry.get("type"), "value", entry.get("type")) in _NESTED_TYPES:
            yield from leaf_options(entry.get("options") or ())
        else:
            yield entry


class Context:
    """
    Wraps one chat-input interaction.

    Handlers receive ``(context, options)``; the context exposes the invoking
    user, member, channel and guild, reply helpers and a logger scoped to the
    channel the command was used in.
    """

    def __init__(self, client: "KarmaClient", interaction: discord.Interaction) -> None:
        self.client = client
        self.interaction = interaction
        self.user = interaction.user
        self.member = interaction.user
        self.channel = interaction.channel
        self.guild = interaction.guild
        self.log: logging.Logger = client.logger.channel(str(interaction.channel_id))
        self._namespace: app_commands.Namespace | None = None

    # ------------------------------------------------------------------ #
    # Logging
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self.log.info(message)

    def ok(self, message: str) -> None:
        self.log.log(OK, message)

    def warn(self, message: str) -> None:
        self.log.warning(message)

    def error(self, message: str | BaseException) -> None:
        if isinstance(message, BaseException):
            self.log.error("%s", message, exc_info=message)
        else:
            self.log.error(message)

    def debug(self, message: Any) -> None:
        if isinstance(message, str):
            self.log.debug(message)
        else:
            self.log.debug("%r", message)

    # ------------------------------------------------------------------ #
    # Responses
    # ------------------------------------------------------------------ #

    async def reply(self, content: str | None = None, *, fetch: bool = False, **kwargs: Any):
        """Respond to the interaction; with ``fetch`` return the sent message."""

        await self.interaction.response.send_message(content, **kwargs)
        if fetch:
            return await self.interaction.original_response()
        return None

    async def ephemeral_reply(self, content: str | None = None, **kwargs: Any):
        return await self.reply(content, ephemeral=True, **kwargs)

    async def follow_up(self, content: str | None = None, *, fetch: bool = False, **kwargs: Any):
        return await self.interaction.followup.send(content, wait=fetch, **kwargs)

    async def edit_reply(self, content: str | None = None, **kwargs: Any):
        return await self.interaction.edit_original_response(content=content, **kwargs)

    async def defer_reply(self, ephemeral: bool = False) -> None:
        await self.interaction.response.defer(ephemeral=ephemeral, thinking=True)

    async def delete_reply(self, message: discord.abc.Snowflake | None = None) -> None:
        if message is None:
            await self.interaction.delete_original_response()
        else:
            await self.interaction.followup.delete_message(message.id)

    # ------------------------------------------------------------------ #
    # Options & permissions
    # ------------------------------------------------------------------ #

    @property
    def namespace(self) -> app_commands.Namespace:
        """Resolved option values of the invoked (sub)command."""

        if self._namespace is None:
            data = self.interaction.data or {}
            self._namespace = app_commands.Namespace(
                self.interaction,
                data.get("resolved", {}),
                list(leaf_options(data.get("options", []))),
            )
        return self._namespace

    def get_option(self, name: str, required: bool = False) -> Any:
        """
        Return the value supplied for option ``name``.

        Users, members, roles, channels and attachments come back resolved.
        Missing options return ``None`` unless ``required`` is set, in which
        case :class:`KeyError` is raised.
        """

        value = getattr(self.namespace, name, None)
        if value is None and required:
            raise KeyError(name)
        return value

    async def permissed(self, permissions: PermissionResolvable | Iterable[PermissionResolvable]) -> bool:
        """Return ``True`` when every permission requirement passes."""

        if not isinstance(permissions, (list, tuple, set, frozenset)):
            permissions = [permissions]
        return await satisfies(self, permissions)


__all__ = ["Context", "leaf_options"]
