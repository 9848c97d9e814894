"""TMDB API client module."""
import asyncio
import dataclasses
import logging
import os
import re
import time
from difflib import SequenceMatcher
from typing import Any

import requests

from .cache import Cache
from .cleaner import title_candidates
from .config import load_env_files
from .models import EnrichedRecord, MediaTypeHint

log = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10
RATE_LIMIT_DELAY = 0.25  # 250ms between requests to avoid rate limiting
DEFAULT_LANGUAGE = "en-US"

# Minimum match confidence for a search result to be accepted.
CONFIDENCE_THRESHOLD = 0.6

# "Title (12345)" or "Title（12345）" names carry an explicit TMDB id.
_TMDB_ID = re.compile(r'^(.+?)\s*[(（](\d+)[)）]')
_EXTENSION = re.compile(r'\.[A-Za-z0-9]{1,5}$')


def load_api_key() -> str | None:
    """
    Load TMDB API key from environment or .env file.

    Priority:
    1. TMDB_API_KEY environment variable
    2. .env file in current directory
    3. .env file in user home directory

    Returns:
        API key string or None if not found
    """
    api_key = os.environ.get("TMDB_API_KEY")
    if api_key:
        return api_key
    load_env_files()
    return os.environ.get("TMDB_API_KEY") or None


def normalize_for_comparison(text: str) -> str:
    """Normalize a string for comparison."""
    text = text.lower()
    text = re.sub(r'[^\w\s]', '', text)
    text = re.sub(r'\s+', ' ', text).strip()
    return text


def similarity_score(s1: str, s2: str) -> float:
    """Calculate similarity between two strings."""
    s1_norm = normalize_for_comparison(s1)
    s2_norm = normalize_for_comparison(s2)
    return SequenceMatcher(None, s1_norm, s2_norm).ratio()


def extract_tmdb_id(name: str) -> tuple[str, int] | None:
    """
    Detect an explicit TMDB id in a name such as ``Dune (438631)``.

    Four-digit numbers that look like a release year are not ids.

    Returns:
        (title, tmdb_id) or None
    """
    match = _TMDB_ID.match(_EXTENSION.sub('', name.strip()))
    if not match:
        return None
    title, digits = match.group(1).strip(), match.group(2)
    tmdb_id = int(digits)
    if not title or tmdb_id <= 0:
        return None
    if len(digits) == 4 and 1900 <= tmdb_id <= 2099:
        return None
    return title, tmdb_id


def _retry_after(headers) -> float:
    """Seconds to wait from a Retry-After header; anything but a number means 1."""
    try:
        return max(0.0, float(headers.get("Retry-After", 1)))
    except (TypeError, ValueError):
        return 1.0


def _fields(media_type: str) -> tuple[str, str, str]:
    """(title, original title, date) field names for a media type."""
    if media_type == "movie":
        return "title", "original_title", "release_date"
    return "name", "original_name", "first_air_date"


class TMDBError(Exception):
    """Exception raised for TMDB API errors."""
    pass


class TMDBClient:
    """Client for TMDB API."""

    def __init__(
        self,
        api_key: str | None = None,
        cache: Cache | None = None,
        language: str | None = None,
    ):
        """
        Initialize TMDB client.

        Args:
            api_key: TMDB API key. If not provided, attempts to load from env/.env.
            cache: Cache instance for storing lookups.
            language: TMDB API language tag (e.g. "en-US"). Falls back to
                      DEFAULT_LANGUAGE when *None*.

        Raises:
            TMDBError: If API key is not found
        """
        self.api_key = api_key or load_api_key()
        if not self.api_key:
            raise TMDBError(
                "TMDB API key not found.\n"
                "Set it using one of these methods:\n"
                "  1. Environment variable: export TMDB_API_KEY=your_key\n"
                "  2. Create a .env file with: TMDB_API_KEY=your_key\n"
                "  3. Add \"tmdb_api_key\" to the settings file\n"
                "Get your free API key at: https://www.themoviedb.org/settings/api"
            )
        self.cache = cache or Cache()
        self.language = language or DEFAULT_LANGUAGE
        self._last_request_time = 0.0
        self._genres: dict[str, dict[int, str]] = {}
        log.debug("Using TMDB language: %s", self.language)

    def _rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < RATE_LIMIT_DELAY:
            time.sleep(RATE_LIMIT_DELAY - elapsed)
        self._last_request_time = time.time()

    def _request(
        self,
        endpoint: str,
        params: dict | None = None,
        retries: int = 3
    ) -> dict | None:
        """
        Make a request to the TMDB API.

        Args:
            endpoint: API endpoint (e.g., '/search/movie')
            params: Query parameters
            retries: Number of retries on failure

        Returns:
            JSON response or None on error
        """
        self._rate_limit()

        url = f"{TMDB_BASE_URL}{endpoint}"
        all_params = {
            "api_key": self.api_key,
            "language": self.language,
            **(params or {})
        }

        log_params = {k: v for k, v in all_params.items() if k != "api_key"}
        log.debug("GET %s params=%s", endpoint, log_params)

        for attempt in range(retries):
            try:
                response = requests.get(url, params=all_params, timeout=DEFAULT_TIMEOUT)

                if response.status_code == 429:  # Rate limited
                    retry_after = _retry_after(response.headers)
                    log.debug("Rate limited, waiting %ss", retry_after)
                    time.sleep(retry_after)
                    continue
                if response.status_code == 404:
                    log.debug("%s not found", endpoint)
                    return None

                response.raise_for_status()
                return response.json()

            except requests.exceptions.RequestException as e:
                log.debug("Request error: %s (attempt %d/%d)", e, attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                log.warning("TMDB request %s failed: %s", endpoint, e)
                return None

        return None

    # -- genres ---------------------------------------------------------

    def _genre_table(self, media_type: str) -> dict[int, str]:
        if media_type in self._genres:
            return self._genres[media_type]

        cached = self.cache.get_genres(media_type, self.language)
        if cached is None:
            data = self._request(f"/genre/{media_type}/list") or {}
            cached = {str(g["id"]): g["name"] for g in data.get("genres", [])}
            if cached:
                self.cache.set_genres(media_type, self.language, cached)

        table = {int(k): v for k, v in cached.items()}
        self._genres[media_type] = table
        return table

    def genre_names(self, media_type: str, genre_ids: list[int]) -> list[str]:
        table = self._genre_table(media_type)
        return [table[g] for g in genre_ids if g in table]

    # -- scoring --------------------------------------------------------

    def _score_results(
        self,
        results: list[dict],
        title: str,
        year: int | None = None,
    ) -> list[tuple[float, float, dict]]:
        """Score and sort results.

        Every result must carry a ``media_type`` key.  Returns a list of
        ``(rank_score, confidence, result_dict)`` sorted by rank_score
        descending.
        """
        title_norm = normalize_for_comparison(title)

        scored = []
        for result in results:
            title_field, original_title_field, date_field = _fields(result["media_type"])

            result_title = result.get(title_field) or ""
            original_title = result.get(original_title_field) or ""

            # Calculate title similarity (use best of localized and original)
            title_sim = max(
                similarity_score(title, result_title),
                similarity_score(title, original_title)
            )

            exact_match = title_norm in (
                normalize_for_comparison(result_title),
                normalize_for_comparison(original_title),
            )
            exact_bonus = 0.3 if exact_match else 0.0

            year_bonus = 0.0
            year_matched = False
            result_date = result.get(date_field) or ""
            if year and len(result_date) >= 4 and result_date[:4].isdigit():
                result_year = int(result_date[:4])
                if result_year == year:
                    year_bonus = 0.25
                    year_matched = True
                elif abs(result_year - year) == 1:
                    year_bonus = 0.1

            # Popularity as tiebreaker (not part of confidence)
            popularity = result.get("popularity") or 0
            pop_bonus = min(popularity / 1000, 1.0) * 0.05

            score = title_sim + exact_bonus + year_bonus + pop_bonus

            conf = 1.0 if exact_match else title_sim
            if year_matched:
                conf = min(1.0, conf + 0.1)

            scored.append((score, conf, result))

        scored.sort(key=lambda x: x[0], reverse=True)
        return scored

    def _to_record(self, result: dict, media_type: str, confidence: float) -> EnrichedRecord:
        title_field, original_title_field, date_field = _fields(media_type)
        genre_ids = result.get("genre_ids")
        if genre_ids is None:
            genre_ids = [g["id"] for g in result.get("genres", [])]
        return EnrichedRecord(
            id=result["id"],
            title=result.get(title_field) or "",
            media_type=media_type,
            original_title=result.get(original_title_field) or "",
            overview=result.get("overview") or "",
            poster_path=result.get("poster_path"),
            release_date=result.get(date_field) or None,
            genre_names=self.genre_names(media_type, genre_ids),
            vote_average=float(result.get("vote_average") or 0),
            popularity=float(result.get("popularity") or 0),
            confidence=confidence,
        )

    # -- lookups --------------------------------------------------------

    def get_details(self, tmdb_id: int, media_type: str) -> EnrichedRecord | None:
        """
        Fetch a movie or series by TMDB id.

        Args:
            tmdb_id: TMDB id
            media_type: 'movie' or 'tv'

        Returns:
            EnrichedRecord if found, None otherwise
        """
        cached = self.cache.get_details(media_type, tmdb_id)
        if cached:
            return EnrichedRecord(**cached)

        data = self._request(f"/{media_type}/{tmdb_id}")
        if not data or "id" not in data:
            return None

        record = self._to_record(data, media_type, confidence=1.0)
        self.cache.set_details(media_type, tmdb_id, dataclasses.asdict(record))
        return record

    def search(
        self,
        title: str,
        year: int | None = None,
        media_type: MediaTypeHint = "mixed",
    ) -> EnrichedRecord | None:
        """
        Search TMDB and return the best result above the threshold.

        Args:
            title: Cleaned search title
            year: Optional release year
            media_type: 'movie', 'tv', or 'mixed' to search both

        Returns:
            EnrichedRecord if a confident match is found, None otherwise
        """
        cache_key = f"{title}:{year or ''}"
        cached = self.cache.get_search(cache_key, media_type)
        if cached:
            return EnrichedRecord(**cached)

        params: dict[str, Any] = {"query": title}
        if media_type == "movie":
            if year:
                params["year"] = year
            data = self._request("/search/movie", params)
        elif media_type == "tv":
            if year:
                params["first_air_date_year"] = year
            data = self._request("/search/tv", params)
        else:
            data = self._request("/search/multi", params)

        results = (data or {}).get("results") or []
        if media_type == "mixed":
            results = [r for r in results if r.get("media_type") in ("movie", "tv")]
        else:
            results = [{**r, "media_type": media_type} for r in results]
        if not results:
            return None

        scored = self._score_results(results, title, year)
        _, confidence, best = scored[0]
        if confidence < CONFIDENCE_THRESHOLD:
            log.debug(
                "Best match for %r is %r with confidence %.2f, below threshold",
                title, best.get("title") or best.get("name"), confidence,
            )
            return None

        record = self._to_record(best, best["media_type"], confidence)
        self.cache.set_search(cache_key, media_type, dataclasses.asdict(record))
        return record

    def lookup(
        self,
        primary: str,
        fallback: str | None = None,
        media_type: MediaTypeHint = "mixed",
    ) -> EnrichedRecord | None:
        """
        Resolve a name to TMDB metadata.

        An explicit id in the primary (or else the fallback) name is tried
        first. Otherwise title candidates cleaned from both names are
        searched in order.

        Args:
            primary: Title of the candidate
            fallback: Folder or file name it was found under
            media_type: 'movie', 'tv' or 'mixed'

        Returns:
            EnrichedRecord or None when nothing matches
        """
        types = ("movie", "tv") if media_type == "mixed" else (media_type,)

        id_info = extract_tmdb_id(primary)
        fallback_id_info = extract_tmdb_id(fallback) if fallback else None
        for info in (id_info, fallback_id_info):
            if info is None:
                continue
            for kind in types:
                record = self.get_details(info[1], kind)
                if record:
                    log.info("Resolved %r by TMDB id %d", primary, info[1])
                    return record
            log.warning("TMDB id %d not found, searching by title", info[1])

        names = [
            id_info[0] if id_info else primary,
            fallback_id_info[0] if fallback_id_info else fallback,
        ]
        candidates = title_candidates(*names, is_series=media_type == "tv")
        if not candidates:
            log.info("No meaningful search title for %r", primary)
            return None

        for title, year in candidates:
            record = self.search(title, year, media_type)
            if record:
                log.info(
                    "Matched %r -> %s %d %r (confidence %.2f)",
                    primary, record.media_type, record.id, record.title, record.confidence,
                )
                return record

        log.info("No TMDB match for %s", ", ".join(repr(t) for t, _ in candidates))
        return None

    async def async_lookup(
        self,
        primary: str,
        fallback: str | None = None,
        media_type: MediaTypeHint = "mixed",
    ) -> EnrichedRecord | None:
        """``lookup`` run in a worker thread."""
        return await asyncio.to_thread(self.lookup, primary, fallback, media_type)
