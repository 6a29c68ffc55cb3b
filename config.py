"""JSON-backed app config and environment-based relay settings."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Optional

from models import Provider, Style

logger = logging.getLogger(__name__)

DEFAULT_HOTKEY = "CommandOrControl+Shift+R"

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _as_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        low = value.strip().lower()
        if low in _TRUE_STRINGS:
            return True
        if low in _FALSE_STRINGS:
            return False
    if value is not None:
        logger.warning("Ignoring non-boolean config value %r", value)
    return default


@dataclass(frozen=True)
class AppConfig:
    hotkey: str = DEFAULT_HOTKEY
    default_style: str = Style.PROFESSIONAL.value
    model_provider: str = Provider.PROXY.value
    api_key: Optional[str] = None
    theme: str = "system"
    start_on_login: bool = False
    auto_update: bool = True

    def with_changes(self, **changes: object) -> "AppConfig":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        defaults = cls()
        style = str(data.get("default_style") or defaults.default_style).lower()
        if style not in {s.value for s in Style}:
            logger.warning("Ignoring unknown default_style %r in config", style)
            style = defaults.default_style
        api_key = data.get("api_key")
        return cls(
            hotkey=str(data.get("hotkey") or defaults.hotkey),
            default_style=style,
            model_provider=str(data.get("model_provider") or "").strip().lower() or Provider.PROXY.value,
            api_key=str(api_key) if api_key else None,
            theme=str(data.get("theme") or defaults.theme),
            start_on_login=_as_bool(data.get("start_on_login"), defaults.start_on_login),
            auto_update=_as_bool(data.get("auto_update"), defaults.auto_update),
        )


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "rephraser" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AppConfig:
        return AppConfig.from_dict(self._read_all())

    def save(self, config: AppConfig) -> None:
        """Replace the stored record with ``config`` in one atomic write."""
        content = json.dumps(asdict(config), ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".config-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Config at %s is unreadable, using defaults: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}


@dataclass(frozen=True)
class RelaySettings:
    api_key: str = ""
    provider: str = Provider.OPENAI.value
    host: str = "0.0.0.0"
    port: int = 3000
    rate_limit_window_s: float = 60.0
    rate_limit_max_requests: int = 20
    request_timeout_s: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        return cls(
            api_key=os.getenv("PROVIDER_API_KEY") or os.getenv("OPENAI_API_KEY", ""),
            provider=os.getenv("RELAY_PROVIDER", Provider.OPENAI.value),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            rate_limit_window_s=float(os.getenv("RATE_LIMIT_WINDOW_S", "60")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "20")),
            request_timeout_s=float(os.getenv("REQUEST_TIMEOUT_S", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def proxy_url_from_env() -> Optional[str]:
    return os.getenv("REPHRASER_PROXY_URL") or None
