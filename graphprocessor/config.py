"""
Editor configuration read from the environment.

A ``.env`` file found from the working directory upwards is loaded first so
local overrides don't need a manual ``export``; real environment variables
always win over the file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from logging import getLogger

logger = getLogger(__name__)

ENV_PREFIX = "GRAPHPROCESSOR_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _read_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    raw = environ.get(ENV_PREFIX + key)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{key} must be a boolean, got '{raw}'")


def _read_number(environ: Mapping[str, str], key: str, default, cast):
    raw = environ.get(ENV_PREFIX + key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{key} must be a number, got '{raw}'") from None


@dataclass(frozen=True)
class EditorConfig:
    # visual nudge applied to pasted nodes and groups
    paste_offset_x: float = 20.0
    paste_offset_y: float = 20.0
    allow_self_loops: bool = False
    auto_disconnect: bool = True

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'EditorConfig':
        if environ is None:
            environ = os.environ
        return cls(
            paste_offset_x=_read_number(environ, "PASTE_OFFSET_X", cls.paste_offset_x, float),
            paste_offset_y=_read_number(environ, "PASTE_OFFSET_Y", cls.paste_offset_y, float),
            allow_self_loops=_read_bool(environ, "ALLOW_SELF_LOOPS", cls.allow_self_loops),
            auto_disconnect=_read_bool(environ, "AUTO_DISCONNECT", cls.auto_disconnect),
            host=environ.get(ENV_PREFIX + "HOST", cls.host),
            port=_read_number(environ, "PORT", cls.port, int),
            log_level=environ.get(ENV_PREFIX + "LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache(maxsize=1)
def get_config() -> EditorConfig:
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path)
        logger.debug("Loaded environment overrides from %s", env_path)
    return EditorConfig.from_env()
