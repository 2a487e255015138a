"""Parser configuration, read from the environment or a .env file."""

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ParserConfig:
    """Options controlling how strictly playlists are decoded."""
    allow_unknown_tags: bool = True
    reject_duplicate_attributes: bool = True
    encoding: str = "utf-8"

    @classmethod
    def from_env(cls) -> "ParserConfig":
        """Build a config from HLSPLAYLIST_* environment variables.

        Variables from a ``.env`` file in the working directory are loaded
        first; values already set in the environment take precedence.
        """
        load_dotenv(find_dotenv(usecwd=True))
        return cls(
            allow_unknown_tags=_env_flag("HLSPLAYLIST_ALLOW_UNKNOWN_TAGS", True),
            reject_duplicate_attributes=_env_flag("HLSPLAYLIST_REJECT_DUPLICATE_ATTRIBUTES", True),
            encoding=os.getenv("HLSPLAYLIST_ENCODING") or "utf-8",
        )
