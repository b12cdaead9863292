"""Discord client binding for registry-managed slash commands."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, List, Tuple

import discord

from karma.command import Command, command_name
from karma.context import Context
from karma.logs import OK, LoggingManager
from karma.registry import ComponentRegistry
from karma.schema import schema_changed

logger = logging.getLogger(__name__)

ContextFactory = Callable[[discord.Interaction], Any]

# Recreated from scratch on the master guild at startup.
BOOTSTRAP_COMMAND = "slash"


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class KarmaClient(discord.Client):
    """Routes chat-input and autocomplete interactions to registry commands."""

    def __init__(self, *, intents: discord.Intents | None = None, log_directory: str | None = None, **options: Any) -> None:
        super().__init__(intents=intents if intents is not None else discord.Intents.default(), **options)
        self.logger = LoggingManager(log_directory)
        self._command_sources: List[Tuple[ComponentRegistry[Command], ContextFactory]] = []

    def set_log_directory(self, log_directory: str | None) -> None:
        self.logger.close()
        self.logger = LoggingManager(log_directory)

    def add_command_handler(
        self,
        commands: ComponentRegistry[Command],
        create_context: ContextFactory | None = None,
    ) -> None:
        """Dispatch interactions for every command held by ``commands``."""

        if create_context is None:

            def create_context(interaction: discord.Interaction) -> Context:
                return Context(self, interaction)

        self._command_sources.append((commands, create_context))

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            return

        data = interaction.data or {}
        if data.get("type", discord.AppCommandType.chat_input.value) != discord.AppCommandType.chat_input.value:
            return

        name = data.get("name")
        options = data.get("options", [])
        for commands, create_context in self._command_sources:
            command = commands.get(name)
            if command is None:
                continue

            if interaction.type is discord.InteractionType.application_command:
                await self._execute(command, interaction, options, create_context)
            elif interaction.type is discord.InteractionType.autocomplete:
                await self._autocomplete(command, interaction, options)

    async def _execute(
        self,
        command: Command,
        interaction: discord.Interaction,
        options: list,
        create_context: ContextFactory,
    ) -> None:
        executor = command.get_executor(options)
        if executor is None:
            return

        context = create_context(interaction)
        for handler in executor:
            try:
                await _maybe_await(handler(context, options))
            except Exception:
                logger.exception("Handler for '/%s' failed", command.name)
                return

    async def _autocomplete(self, command: Command, interaction: discord.Interaction, options: list) -> None:
        predictor = command.get_autocompleter(options)
        if predictor is None:
            return
        try:
            await _maybe_await(predictor(interaction, self))
        except Exception:
            logger.exception("Autocomplete for '/%s' failed", command.name)

    async def add_command_update_handler(
        self, commands: ComponentRegistry[Command], guild: discord.abc.Snowflake
    ) -> Callable[..., Any]:
        """
        Keep ``guild``'s copy of the commands in step with hot reloads.

        The bootstrap command is recreated immediately; afterwards any reload
        whose schema differs from the previous version edits the remote command.
        Returns the registered reload listener.
        """

        app_id = self.application_id
        system = self.logger.channel("system")

        bootstrap = commands.get(BOOTSTRAP_COMMAND)
        if bootstrap is not None:
            for remote in await self.http.get_guild_commands(app_id, guild.id):
                if remote["name"] == BOOTSTRAP_COMMAND:
                    await self.http.delete_guild_command(app_id, guild.id, remote["id"])
                    break
            await self.http.upsert_guild_command(app_id, guild.id, bootstrap.raw())

        async def on_reload(new: Command, old: Command) -> None:
            payload = new.raw()
            if not schema_changed(old.raw(), payload):
                return
            for remote in await self.http.get_guild_commands(app_id, guild.id):
                if remote["name"] == new.name:
                    await self.http.edit_guild_command(app_id, guild.id, remote["id"], payload)
                    system.info(f"updated /{new.name} on guild {guild.id}")
                    break

        commands.on("reload", on_reload)
        return on_reload


def run() -> None:
    """Start the client using configuration from the environment."""

    from karma.config import core

    if core.missing():
        logger.error("Missing settings: %s. Cannot run client.", ", ".join(core.missing()))
        return

    client = KarmaClient(log_directory=core.LOG_DIRECTORY)
    commands: ComponentRegistry[Command] = ComponentRegistry(Command, command_name)
    client.add_command_handler(commands)
    system = client.logger.channel("system")
    state = {"ready": False}

    async def on_ready() -> None:
        if state["ready"]:
            return
        state["ready"] = True

        loaded = 0
        if core.COMMAND_DIRECTORY:
            loaded = await commands.load_directory(core.COMMAND_DIRECTORY, core.WATCH_COMMANDS)
        system.log(OK, f"loaded {loaded} slash commands")
        system.log(OK, f"logged in as {client.user} ({client.user.id})")

        if core.MASTER_GUILD_ID is not None:
            guild = await client.fetch_guild(core.MASTER_GUILD_ID)
            await client.add_command_update_handler(commands, guild)

    commands.on("observe_changes", lambda display: system.info(f"reloaded file: {display}"))
    client.event(on_ready)

    try:
        client.run(core.DISCORD_API_TOKEN, log_handler=None)
    except discord.LoginFailure as exc:
        logger.error("Login failed: %s", exc)
    except Exception as exc:  # pragma: no cover - defensive guard
        logger.exception("Unexpected error while running client: %s", exc)
    finally:
        commands.clear_watchers()
        client.logger.close()
