from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_LOG_LEVEL = "WARNING"


def _env(key: str) -> str:
    return (os.getenv(key, "") or "").strip()


@dataclass(frozen=True)
class StoreConfig:
    """Where activities and sessions live.

    Resolution order for the store:
      1) an explicit local file (``--store`` or PRACTICE_STORE_FILE)
      2) the remote content store (PRACTICE_STORE_URL + PRACTICE_STORE_TOKEN)
    """

    api_url: Optional[str] = None
    api_token: Optional[str] = None
    store_file: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, *, store_file: Optional[str] = None) -> "StoreConfig":
        url = _env("PRACTICE_STORE_URL").rstrip("/")
        token = _env("PRACTICE_STORE_TOKEN")
        return cls(
            api_url=url or None,
            api_token=token or None,
            store_file=store_file or _env("PRACTICE_STORE_FILE") or None,
            timeout=_parse_timeout(_env("PRACTICE_STORE_TIMEOUT")),
            log_level=_env("PRACTICE_LOG_LEVEL").upper() or DEFAULT_LOG_LEVEL,
        )

    def is_remote_configured(self) -> bool:
        return bool(self.api_url and self.api_token)


def _parse_timeout(raw: str) -> float:
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


def configure_logging(level: str, *, verbose: bool = False) -> None:
    """Send package logs to stderr via rich. Safe to call more than once."""
    resolved = logging.DEBUG if verbose else logging.getLevelName(level)
    if not isinstance(resolved, int):
        resolved = logging.WARNING

    pkg_logger = logging.getLogger("practice_planner")
    pkg_logger.setLevel(resolved)
    if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
        pkg_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
