"""Turn merged candidates into catalog entries.

Each candidate is looked up once through an async ``lookup`` callable
(``TMDBClient.async_lookup`` in production).  A miss, or a failing
lookup, produces a placeholder entry so no candidate is ever dropped.
"""
from __future__ import annotations

import hashlib
import logging
import posixpath
from typing import Awaitable, Callable, Iterable

from .aggregator import MergedCandidate
from .models import (
    AggregatedSeries,
    CatalogEntry,
    EnrichedRecord,
    MediaTypeHint,
    MovieCandidate,
    MovieEntry,
    TvCandidate,
    TvEntry,
)

log = logging.getLogger(__name__)

Lookup = Callable[[str, str | None, MediaTypeHint], Awaitable[EnrichedRecord | None]]


def _fallback_name(item: MergedCandidate) -> str | None:
    name = posixpath.basename(item.path.rstrip("/"))
    if not name or name == item.title:
        return None
    return name


def placeholder_id(item: MergedCandidate) -> str:
    """Synthetic id, stable for a given path and title."""
    kind = "movie" if isinstance(item, MovieCandidate) else "tv"
    digest = hashlib.md5(f"{item.path}\0{item.title}".encode("utf-8")).hexdigest()[:12]
    return f"unknown_{kind}_{digest}"


def placeholder_entry(item: MergedCandidate) -> CatalogEntry:
    """Entry carrying only what the walk found."""
    if isinstance(item, MovieCandidate):
        return MovieEntry(
            id=placeholder_id(item),
            title=item.title,
            files=list(item.files),
            original_path=item.path,
            original_title=item.title,
            release_date=str(item.year) if item.year else None,
        )
    return TvEntry(
        id=placeholder_id(item),
        title=item.title,
        seasons=list(item.seasons),
        original_path=item.path,
        source_paths=_source_paths(item),
        original_title=item.title,
    )


def _source_paths(item: AggregatedSeries | TvCandidate) -> list[str]:
    if isinstance(item, AggregatedSeries):
        return list(item.source_paths)
    return [item.path]


def enriched_entry(item: MergedCandidate, record: EnrichedRecord) -> CatalogEntry:
    """
    Combine a candidate with its TMDB record.

    The entry kind follows the candidate's shape, never the record's.
    """
    common = dict(
        title=record.title or item.title,
        original_path=item.path,
        tmdb_id=record.id,
        original_title=record.original_title,
        overview=record.overview,
        poster_path=record.poster_path,
        release_date=record.release_date,
        genre_names=list(record.genre_names),
        vote_average=record.vote_average,
        enriched=True,
    )
    if isinstance(item, MovieCandidate):
        return MovieEntry(id=f"movie_{record.id}", files=list(item.files), **common)
    return TvEntry(
        id=f"tv_{record.id}",
        seasons=list(item.seasons),
        source_paths=_source_paths(item),
        **common,
    )


def make_ids_unique(entries: list[CatalogEntry]) -> None:
    """Suffix repeated ids with _2, _3, ... in place."""
    seen: set[str] = set()
    for entry in entries:
        if entry.id in seen:
            n = 2
            while f"{entry.id}_{n}" in seen:
                n += 1
            entry.id = f"{entry.id}_{n}"
        seen.add(entry.id)


def build_placeholders(items: Iterable[MergedCandidate]) -> list[CatalogEntry]:
    """Catalog entries for a run without enrichment."""
    entries = [placeholder_entry(item) for item in items]
    make_ids_unique(entries)
    return entries


async def enrich(items: Iterable[MergedCandidate], lookup: Lookup) -> list[CatalogEntry]:
    """
    Look up every candidate, one at a time, in order.

    Args:
        items: Movies and merged series
        lookup: ``lookup(primary, fallback, media_type_hint)`` coroutine

    Returns:
        One catalog entry per input item, in input order
    """
    entries: list[CatalogEntry] = []
    misses = 0
    for item in items:
        hint: MediaTypeHint = item.media_type_guess
        fallback = _fallback_name(item)
        try:
            record = await lookup(item.title, fallback, hint)
        except Exception as exc:
            log.warning("Lookup for %r failed: %s", item.title, exc)
            record = None

        if record is None:
            misses += 1
            log.warning("No metadata for %r (%s), using placeholder", item.title, item.path)
            entries.append(placeholder_entry(item))
        else:
            entries.append(enriched_entry(item, record))

    make_ids_unique(entries)
    log.info("Enriched %d of %d entries", len(entries) - misses, len(entries))
    return entries
