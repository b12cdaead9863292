import logging
import os
import subprocess
import sys
from pathlib import Path

from karma.config.core import Core
from karma.config.loader import config_path, load_raw_config

SRC = Path(__file__).resolve().parents[2] / "src"


def test_missing_config_file_is_empty(tmp_path):
    assert load_raw_config(tmp_path / "absent.toml") == {}


def test_toml_values_take_precedence_over_env(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text(
        "[karma]\nwatch_commands = false\n"
        "[karma.discord]\ntoken_env = \"MY_TOKEN\"\nmaster_guild_id = 123\n"
        "[karma.paths]\ncommand_directory = \"cmds\"\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("MY_TOKEN", "secret")
    monkeypatch.setenv("COMMAND_DIRECTORY", "ignored")

    core = Core(load_raw_config(path))

    assert core.DISCORD_API_TOKEN == "secret"
    assert core.MASTER_GUILD_ID == 123
    assert core.COMMAND_DIRECTORY == "cmds"
    assert core.WATCH_COMMANDS is False
    assert core.missing() == []


def test_env_fallbacks(monkeypatch):
    monkeypatch.delenv("DISCORD_API_TOKEN", raising=False)
    monkeypatch.setenv("COMMAND_DIRECTORY", "commands")
    monkeypatch.setenv("MASTER_GUILD_ID", "")
    monkeypatch.setenv("WATCH_COMMANDS", "no")

    core = Core({})

    assert core.COMMAND_DIRECTORY == "commands"
    assert core.MASTER_GUILD_ID is None
    assert core.WATCH_COMMANDS is False
    assert core.missing() == ["DISCORD_API_TOKEN"]


def test_config_path_honours_env_override(tmp_path, monkeypatch):
    target = tmp_path / "alt.toml"
    target.write_text("[karma.paths]\ncommand_directory = \"alt\"\n", encoding="utf-8")
    monkeypatch.setenv("KARMA_CONFIG", str(target))

    assert config_path() == target
    assert load_raw_config()["karma"]["paths"]["command_directory"] == "alt"


def test_malformed_guild_id_is_ignored_with_warning(monkeypatch, caplog):
    monkeypatch.setenv("MASTER_GUILD_ID", "not-a-number")

    with caplog.at_level(logging.WARNING, logger="karma.config.core"):
        core = Core({})

    assert core.MASTER_GUILD_ID is None
    assert "not-a-number" in caplog.text


def test_importing_the_library_does_not_read_configuration(tmp_path):
    (tmp_path / ".env").write_text("MASTER_GUILD_ID=not-a-number\n", encoding="utf-8")
    env = dict(os.environ, MASTER_GUILD_ID="not-a-number", PYTHONPATH=str(SRC))
    script = (
        "import sys, logging, karma, karma.schema, karma.registry, karma.logs\n"
        "assert 'karma.config' not in sys.modules\n"
        "assert not logging.getLogger().handlers\n"
    )

    result = subprocess.run(
        [sys.executable, "-c", script], cwd=tmp_path, env=env, capture_output=True, text=True
    )

    assert result.returncode == 0, result.stderr
