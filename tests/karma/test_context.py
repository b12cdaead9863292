import asyncio
from types import SimpleNamespace

import discord
import pytest

from karma.context import Context, leaf_options
from karma.logs import LoggingManager


class FakeResponse:
    def __init__(self):
        self.sent = []
        self.deferred = None

    async def send_message(self, content=None, **kwargs):
        self.sent.append((content, kwargs))

    async def defer(self, **kwargs):
        self.deferred = kwargs


def _context(options=None, granted=None):
    member = SimpleNamespace(id=5)
    channel = SimpleNamespace(
        id=9,
        permissions_for=lambda who: granted or discord.Permissions.none(),
    )
    interaction = SimpleNamespace(
        user=member,
        channel=channel,
        channel_id=9,
        guild=SimpleNamespace(id=1),
        guild_id=1,
        _state=None,
        data={"name": "tag", "type": 1, "options": options or []},
        response=FakeResponse(),
    )

    async def original_response():
        return "message"

    interaction.original_response = original_response
    client = SimpleNamespace(logger=LoggingManager())
    return Context(client, interaction)


def test_leaf_options_descend_through_subcommands():
    options = [
        {"name": "g", "type": 2, "options": [
            {"name": "s", "type": 1, "options": [{"name": "x", "type": 3, "value": "v"}]},
        ]},
    ]

    assert [entry["name"] for entry in leaf_options(options)] == ["x"]


def test_get_option_reads_nested_values():
    context = _context(
        [{"name": "add", "type": 1, "options": [
            {"name": "name", "type": 3, "value": "pizza"},
            {"name": "uses", "type": 4, "value": 3},
        ]}]
    )

    assert context.get_option("name") == "pizza"
    assert context.get_option("uses", required=True) == 3
    assert context.get_option("missing") is None
    with pytest.raises(KeyError):
        context.get_option("missing", required=True)


def test_replies_go_through_interaction_response():
    context = _context()

    async def scenario():
        plain = await context.reply("hi")
        fetched = await context.reply("again", fetch=True)
        await context.ephemeral_reply("secret")
        await context.defer_reply(ephemeral=True)
        return plain, fetched

    plain, fetched = asyncio.run(scenario())

    assert plain is None
    assert fetched == "message"
    assert context.interaction.response.sent == [
        ("hi", {}),
        ("again", {}),
        ("secret", {"ephemeral": True}),
    ]
    assert context.interaction.response.deferred == {"ephemeral": True, "thinking": True}


def test_permissed_checks_bits_and_predicates():
    granted = discord.Permissions(manage_messages=True, send_messages=True)
    context = _context(granted=granted)
    seen = []

    async def async_ok(ctx):
        seen.append("async")
        return True

    def deny(ctx):
        seen.append("deny")
        return False

    def never(ctx):  # pragma: no cover - short-circuited
        seen.append("never")
        return True

    manage = discord.Permissions(manage_messages=True).value
    admin = discord.Permissions(administrator=True).value

    assert asyncio.run(context.permissed(manage)) is True
    assert asyncio.run(context.permissed([manage, async_ok])) is True
    assert asyncio.run(context.permissed([admin, never])) is False
    assert asyncio.run(context.permissed([deny, never])) is False
    assert seen == ["async", "deny"]


def test_channel_logger_is_scoped_to_invoking_channel(caplog):
    context = _context()

    with caplog.at_level("DEBUG", logger="karma.channel.9"):
        context.ok("done")
        context.warn("careful")
        context.debug({"k": 1})

    assert [r.levelname for r in caplog.records] == ["OK", "WARNING", "DEBUG"]
    assert all(r.name == "karma.channel.9" for r in caplog.records)
