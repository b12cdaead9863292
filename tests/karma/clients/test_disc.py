import asyncio
import logging
from types import SimpleNamespace

import discord

from karma import Command, ComponentRegistry, command_name
from karma.clients.disc import KarmaClient


class Tag(Command):
    def __init__(self, description="Manage tags", calls=None):
        super().__init__(name="tag", description=description)
        self.calls = calls if calls is not None else []
        (
            self.schema()
            .interact(self.root_handler)
            .command("add", "Add a tag").interact(self.add)
                .string("name", "Tag name").predict(self.suggest)
        )

    def root_handler(self, context, options):
        self.calls.append(("root", context))

    async def add(self, context, options):
        self.calls.append(("add", context))

    async def suggest(self, interaction, client):
        self.calls.append(("suggest", client))


class Slash(Command):
    def __init__(self):
        super().__init__(name="slash", description="Manage commands")


class FakeHTTP:
    def __init__(self, remote):
        self.remote = remote
        self.calls = []

    async def get_guild_commands(self, app_id, guild_id):
        self.calls.append(("get", app_id, guild_id))
        return list(self.remote)

    async def delete_guild_command(self, app_id, guild_id, command_id):
        self.calls.append(("delete", app_id, guild_id, command_id))

    async def upsert_guild_command(self, app_id, guild_id, payload):
        self.calls.append(("upsert", app_id, guild_id, payload["name"]))

    async def edit_guild_command(self, app_id, guild_id, command_id, payload):
        self.calls.append(("edit", app_id, guild_id, command_id, payload["description"]))


def _client():
    return KarmaClient(intents=discord.Intents.none(), application_id=42)


def _registry(*commands):
    registry = ComponentRegistry(Command, command_name)
    for command in commands:
        registry._store(command.name, command)
    return registry


def _interaction(kind, options, name="tag", guild=True):
    return SimpleNamespace(
        type=kind,
        guild=SimpleNamespace(id=7) if guild else None,
        data={"name": name, "type": 1, "options": options},
    )


ADD_PATH = [{"name": "add", "type": 1, "options": [{"name": "name", "type": 3, "value": "x"}]}]


def test_chat_input_runs_handlers_innermost_first():
    client = _client()
    tag = Tag()
    client.add_command_handler(_registry(tag), create_context=lambda interaction: "ctx")

    asyncio.run(client.on_interaction(_interaction(discord.InteractionType.application_command, ADD_PATH)))

    assert tag.calls == [("add", "ctx"), ("root", "ctx")]


def test_autocomplete_calls_single_predictor_with_client():
    client = _client()
    tag = Tag()
    client.add_command_handler(_registry(tag), create_context=lambda interaction: "ctx")
    path = [{"name": "add", "type": 1, "options": [{"name": "name", "type": 3, "value": "x", "focused": True}]}]

    asyncio.run(client.on_interaction(_interaction(discord.InteractionType.autocomplete, path)))

    assert tag.calls == [("suggest", client)]


def test_interactions_outside_guilds_or_for_unknown_commands_are_ignored():
    client = _client()
    tag = Tag()
    client.add_command_handler(_registry(tag), create_context=lambda interaction: "ctx")

    asyncio.run(client.on_interaction(_interaction(discord.InteractionType.application_command, ADD_PATH, guild=False)))
    asyncio.run(client.on_interaction(_interaction(discord.InteractionType.application_command, [], name="other")))

    assert tag.calls == []


def test_failing_handler_stops_the_chain(caplog):
    client = _client()
    tag = Tag()

    async def broken(context, options):
        raise RuntimeError("boom")

    tag.root.options[0].handler = broken
    client.add_command_handler(_registry(tag), create_context=lambda interaction: "ctx")

    with caplog.at_level(logging.ERROR, logger="karma.clients.disc"):
        asyncio.run(client.on_interaction(_interaction(discord.InteractionType.application_command, ADD_PATH)))

    assert tag.calls == []
    assert "Handler for '/tag' failed" in caplog.text


def test_reload_listener_edits_only_changed_commands():
    client = _client()
    client.http = FakeHTTP([{"id": 1, "name": "slash"}, {"id": 2, "name": "tag"}])
    registry = _registry(Slash(), Tag())
    guild = SimpleNamespace(id=7)

    async def scenario():
        await client.add_command_update_handler(registry, guild)
        client.http.calls.clear()

        registry._store("tag", Tag())
        for _ in range(10):
            await asyncio.sleep(0)
        unchanged = list(client.http.calls)

        registry._store("tag", Tag(description="Tags, improved"))
        for _ in range(10):
            await asyncio.sleep(0)
        return unchanged, client.http.calls

    unchanged, changed = asyncio.run(scenario())

    assert unchanged == []
    assert changed == [("get", 42, 7), ("edit", 42, 7, 2, "Tags, improved")]


def test_update_handler_setup_calls():
    client = _client()
    client.http = FakeHTTP([{"id": 1, "name": "slash"}])
    registry = _registry(Slash())

    asyncio.run(client.add_command_update_handler(registry, SimpleNamespace(id=7)))

    assert client.http.calls == [
        ("get", 42, 7),
        ("delete", 42, 7, 1),
        ("upsert", 42, 7, "slash"),
    ]
