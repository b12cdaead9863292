import logging
import os

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _as_bool(raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUTHY


def _as_snowflake(raw: object) -> int | None:
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        logger.warning("Ignoring master guild id %r; expected an integer.", raw)
        return None


class Core:
    def __init__(self, config: dict | None = None) -> None:
        cfg = (config or {}).get("karma", {})
        discord_cfg = cfg.get("discord", {})
        paths_cfg = cfg.get("paths", {})

        token_env = str(discord_cfg.get("token_env", "DISCORD_API_TOKEN"))

        self.DISCORD_API_TOKEN: str | None = os.getenv(token_env)

        self.MASTER_GUILD_ID: int | None = _as_snowflake(
            discord_cfg.get("master_guild_id") or os.getenv("MASTER_GUILD_ID", "")
        )

        self.COMMAND_DIRECTORY: str | None = (
            paths_cfg.get("command_directory") or os.getenv("COMMAND_DIRECTORY") or None
        )
        self.LOG_DIRECTORY: str | None = (
            paths_cfg.get("log_directory") or os.getenv("LOG_DIRECTORY") or None
        )
        self.WATCH_COMMANDS: bool = _as_bool(
            cfg.get("watch_commands", os.getenv("WATCH_COMMANDS", "true"))
        )

        if not self.COMMAND_DIRECTORY:
            logger.info("No command directory configured; no commands will be loaded.")

    def missing(self) -> list[str]:
        """Return the names of settings required to connect that are unset."""

        required = [("DISCORD_API_TOKEN", self.DISCORD_API_TOKEN)]
        return [name for name, val in required if not val]
