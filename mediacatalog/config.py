"""Settings management for mediacatalog."""
import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default values for every known key
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS: dict[str, Any] = {
    # Listing service
    "alist": {
        "url": "",
        "username": "",
        "password": "",
    },

    # TMDB
    "tmdb_api_key": "",
    "tmdb_language": "en-US",

    # Walking
    "preset": "default",
    "max_depth": 10,
    "concurrency": 4,
    "roots": [],

    # Output
    "output": "catalog.json",
    "order_by": "title",
    "order": "asc",
}

ORDER_BY_FIELDS = ("title", "release_date", "vote_average", "id")
ORDERS = ("asc", "desc")

# Environment variable -> settings path
ENV_OVERRIDES = {
    "TMDB_API_KEY": ("tmdb_api_key",),
    "ALIST_URL": ("alist", "url"),
    "ALIST_USERNAME": ("alist", "username"),
    "ALIST_PASSWORD": ("alist", "password"),
}


class ConfigError(Exception):
    """Raised for unreadable or invalid configuration."""
    pass


@dataclass
class RootConfig:
    """Represents one directory tree to catalog."""
    path: str
    title: str | None = None
    preset: str | None = None


def load_env_files() -> None:
    """
    Load ``.env`` files into the environment.

    The working directory is read first, then the home directory.
    Variables that are already set are never overwritten.
    """
    for env_path in (Path.cwd() / ".env", Path.home() / ".env"):
        if env_path.exists():
            load_dotenv(env_path, override=False)


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Settings:
    """Settings store: defaults, then the JSON file, then the environment.

    Usage:
        settings = Settings.load("mediacatalog.json")
        roots = settings.roots
        settings.set("max_depth", 3)
    """

    def __init__(self, data: dict[str, Any] | None = None):
        self._data = _deep_merge(DEFAULT_SETTINGS, data or {})

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> "Settings":
        """
        Build settings from an optional JSON file and the environment.

        Args:
            path: Settings file; None means defaults only
            environ: Environment to read overrides from. Defaults to
                     ``os.environ`` after loading ``.env`` files.

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        data: dict[str, Any] = {}
        if path is not None:
            data = _read_json(Path(path))

        if environ is None:
            load_env_files()
            environ = dict(os.environ)

        settings = cls(data)
        settings.apply_environment(environ)
        settings.validate()
        return settings

    # -- public API -------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    @property
    def roots(self) -> list[RootConfig]:
        roots = []
        for item in self._data.get("roots") or []:
            if isinstance(item, str):
                roots.append(RootConfig(path=item))
            else:
                roots.append(RootConfig(
                    path=item["path"],
                    title=item.get("title") or None,
                    preset=item.get("preset") or None,
                ))
        return roots

    @property
    def alist(self) -> dict[str, str]:
        return self._data["alist"]

    def apply_environment(self, environ: dict[str, str]) -> None:
        for variable, keys in ENV_OVERRIDES.items():
            value = environ.get(variable)
            if not value:
                continue
            target = self._data
            for key in keys[:-1]:
                target = target.setdefault(key, {})
            target[keys[-1]] = value
            log.debug("Setting %s taken from $%s", ".".join(keys), variable)

    def validate(self) -> None:
        """
        Check types and allowed values.

        Raises:
            ConfigError: On the first invalid setting
        """
        for key in ("max_depth", "concurrency"):
            value = self._data.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"'{key}' must be a non-negative integer, got {value!r}")
        if self._data["concurrency"] < 1:
            raise ConfigError("'concurrency' must be at least 1")

        if self._data.get("order_by") not in ORDER_BY_FIELDS:
            raise ConfigError(
                f"'order_by' must be one of {', '.join(ORDER_BY_FIELDS)}, "
                f"got {self._data.get('order_by')!r}"
            )
        if self._data.get("order") not in ORDERS:
            raise ConfigError(f"'order' must be 'asc' or 'desc', got {self._data.get('order')!r}")

        roots = self._data.get("roots")
        if not isinstance(roots, list):
            raise ConfigError("'roots' must be a list")
        for item in roots:
            if isinstance(item, str):
                continue
            if not isinstance(item, dict) or not item.get("path"):
                raise ConfigError(f"Every root needs a 'path', got {item!r}")

    def require_alist(self) -> None:
        """Raise ConfigError unless the listing service is configured."""
        missing = [k for k in ("url", "username", "password") if not self.alist.get(k)]
        if missing:
            raise ConfigError(
                "AList connection is not configured (missing "
                + ", ".join(missing)
                + "). Set them in the settings file or via ALIST_URL, "
                "ALIST_USERNAME and ALIST_PASSWORD."
            )


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Settings file {path} is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a JSON object")
    return data
