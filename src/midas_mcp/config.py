"""
Configuration

Environment-driven settings and logging setup.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator

DEFAULT_PORT = 10023
DEFAULT_LISTEN_PORT = 10024
DEFAULT_QUERY_TIMEOUT_MS = 2000
DATA_DIR = Path(__file__).parent / "data"

ENV_PREFIX = "MIDAS_"


class ConsoleSettings(BaseModel):
    """
    Runtime settings for the MCP server.

    Read from the environment by ``from_env()``:
        MIDAS_IP                Console address; auto-connect when set
        MIDAS_PORT              OSC port on the console (default: 10023)
        MIDAS_LISTEN_PORT       Local port for replies (default: 10024)
        MIDAS_DATA_DIR          Directory holding the endpoint JSON files
        MIDAS_LOG_LEVEL         loguru level (default: INFO)
        MIDAS_QUERY_TIMEOUT_MS  get_value wait (default: 2000)
    """

    ip: Optional[str] = None
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    listen_port: int = Field(default=DEFAULT_LISTEN_PORT, ge=1, le=65535)
    data_dir: Path = DATA_DIR
    log_level: str = "INFO"
    query_timeout_ms: int = Field(default=DEFAULT_QUERY_TIMEOUT_MS, gt=0)

    @field_validator("ip")
    @classmethod
    def _blank_ip_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ConsoleSettings":
        """
        Build settings from ``MIDAS_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (tests)

        Raises:
            pydantic.ValidationError: If a variable has an invalid value
        """
        environ = os.environ if environ is None else environ
        fields = {
            "ip": "IP",
            "port": "PORT",
            "listen_port": "LISTEN_PORT",
            "data_dir": "DATA_DIR",
            "log_level": "LOG_LEVEL",
            "query_timeout_ms": "QUERY_TIMEOUT_MS",
        }
        values = {}
        for field, suffix in fields.items():
            raw = environ.get(ENV_PREFIX + suffix)
            if raw is not None and raw != "":
                values[field] = raw
        return cls.model_validate(values)


def configure_logging(level: str = "INFO") -> None:
    """
    Route loguru output to stderr.

    stdout carries the MCP stdio stream and must stay clean.
    """
    logger.remove()
    logger.add(sys.stderr, level=level)
