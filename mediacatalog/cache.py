"""Cache module for storing TMDB lookups locally."""
import json
import logging
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

CACHE_FILE = ".mediacatalog_cache.json"


class Cache:
    """Local JSON cache for TMDB lookups."""

    def __init__(self, cache_dir: Path | None = None, persist: bool = True):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory to store cache file. Defaults to current directory.
            persist: When False the cache lives in memory only.
        """
        if cache_dir is None:
            cache_dir = Path.cwd()
        self.cache_path = Path(cache_dir) / CACHE_FILE
        self.persist = persist
        self._cache: dict[str, Any] = self._load() if persist else self._empty_cache()

    def _load(self) -> dict[str, Any]:
        """Load cache from disk."""
        if self.cache_path.exists():
            try:
                with open(self.cache_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                log.warning("Ignoring unreadable cache %s: %s", self.cache_path, e)
                return self._empty_cache()
            empty = self._empty_cache()
            empty.update({k: v for k, v in data.items() if k in empty})
            return empty
        return self._empty_cache()

    def _empty_cache(self) -> dict[str, Any]:
        """Return empty cache structure."""
        return {
            "searches": {},
            "details": {},
            "genres": {},
        }

    def _save(self) -> None:
        """Save cache to disk."""
        if not self.persist:
            return
        try:
            with open(self.cache_path, 'w', encoding='utf-8') as f:
                json.dump(self._cache, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log.warning("Could not write cache %s: %s", self.cache_path, e)

    def _normalize_key(self, key: str) -> str:
        """Normalize a string for use as cache key."""
        return key.lower().strip()

    def get_search(self, title: str, media_type: str) -> dict | None:
        """
        Get a cached search result.

        Args:
            title: The search title
            media_type: 'movie', 'tv' or 'mixed'

        Returns:
            Cached record data if found, None otherwise
        """
        key = f"{media_type}:{self._normalize_key(title)}"
        return self._cache["searches"].get(key)

    def set_search(self, title: str, media_type: str, result: dict) -> None:
        key = f"{media_type}:{self._normalize_key(title)}"
        self._cache["searches"][key] = result
        self._save()

    def get_details(self, media_type: str, tmdb_id: int) -> dict | None:
        return self._cache["details"].get(f"{media_type}:{tmdb_id}")

    def set_details(self, media_type: str, tmdb_id: int, result: dict) -> None:
        self._cache["details"][f"{media_type}:{tmdb_id}"] = result
        self._save()

    def get_genres(self, media_type: str, language: str) -> dict[str, str] | None:
        """
        Get the cached genre id -> name table.

        JSON keys are strings, so ids are stored as strings too.
        """
        return self._cache["genres"].get(f"{media_type}:{language}")

    def set_genres(self, media_type: str, language: str, genres: dict[str, str]) -> None:
        self._cache["genres"][f"{media_type}:{language}"] = genres
        self._save()
