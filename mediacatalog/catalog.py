"""Catalog document: serialization, ordering and persistence."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Union

from .models import (
    CatalogEntry,
    EpisodeRef,
    FileRef,
    MovieEntry,
    SeasonFragment,
    TvEntry,
    Version,
    VersionGroup,
)

log = logging.getLogger(__name__)

CatalogItem = Union[CatalogEntry, VersionGroup]
FileUrl = Callable[[str, Union[str, None]], str]


# ------------------------------------------------------------------
# Serialization
# ------------------------------------------------------------------

def _file_dict(ref: FileRef, file_url: FileUrl | None) -> dict[str, Any]:
    data = {
        "name": ref.name,
        "path": ref.path,
        "size": ref.size,
        "quality": ref.metadata.quality,
        "extension": ref.metadata.extension,
    }
    if file_url:
        data["url"] = file_url(ref.path, ref.signature)
    return data


def _episode_dict(episode: EpisodeRef, file_url: FileUrl | None) -> dict[str, Any]:
    data = {
        "episode_number": episode.episode_number,
        "name": episode.name,
        "title": episode.title,
        "path": episode.path,
        "size": episode.size,
    }
    if file_url:
        data["url"] = file_url(episode.path, episode.signature)
    return data


def _season_dict(season: SeasonFragment, file_url: FileUrl | None) -> dict[str, Any]:
    return {
        "season_number": season.season_number,
        "episode_count": len(season.episodes),
        "episodes": [_episode_dict(e, file_url) for e in season.episodes],
    }


def entry_to_dict(entry: CatalogEntry, file_url: FileUrl | None = None) -> dict[str, Any]:
    """
    JSON-ready dict for one entry.

    Movie dicts carry ``files`` and never ``seasons``; TV dicts carry
    ``seasons`` and ``episode_count`` and never bare ``files``.
    """
    data: dict[str, Any] = {
        "id": entry.id,
        "title": entry.title,
        "media_type": entry.media_type,
        "directory_type": entry.directory_type,
        "tmdb_id": entry.tmdb_id,
        "original_title": entry.original_title,
        "overview": entry.overview,
        "poster_path": entry.poster_path,
        "release_date": entry.release_date,
        "genre_names": list(entry.genre_names),
        "vote_average": entry.vote_average,
        "enriched": entry.enriched,
        "original_path": entry.original_path,
    }
    if isinstance(entry, MovieEntry):
        data["files"] = [_file_dict(f, file_url) for f in entry.files]
        data["file_count"] = entry.file_count
    else:
        data["seasons"] = [_season_dict(s, file_url) for s in entry.seasons]
        data["season_count"] = len(entry.seasons)
        data["episode_count"] = entry.episode_count
        data["source_paths"] = list(entry.source_paths)
    return data


def _version_dict(version: Version, file_url: FileUrl | None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": version.id,
        "version_name": version.version_name,
        "is_main": version.is_main,
        "media_type": version.media_type,
        "directory_type": version.entry.directory_type,
        "original_path": version.entry.original_path,
    }
    if isinstance(version.entry, TvEntry):
        data["seasons"] = [_season_dict(s, file_url) for s in version.seasons]
    else:
        data["files"] = [_file_dict(f, file_url) for f in version.files]
    return data


def item_to_dict(item: CatalogItem, file_url: FileUrl | None = None) -> dict[str, Any]:
    """Entries serialize as-is; groups as their main entry plus versions."""
    if not isinstance(item, VersionGroup):
        return entry_to_dict(item, file_url)
    data = entry_to_dict(item.main_version.entry, file_url)
    data["versions"] = [_version_dict(v, file_url) for v in item.versions]
    data["is_aggregated"] = item.is_aggregated
    data["aggregated_count"] = item.aggregated_count
    return data


# ------------------------------------------------------------------
# Document
# ------------------------------------------------------------------

def sort_items(items: list[dict[str, Any]], order_by: str = "title", order: str = "asc") -> list[dict[str, Any]]:
    """Sort serialized entries; strings compare case-insensitively and
    entries without a value always come last."""
    present = [i for i in items if i.get(order_by) is not None]
    missing = [i for i in items if i.get(order_by) is None]

    def key(item: dict[str, Any]) -> Any:
        value = item[order_by]
        return value.casefold() if isinstance(value, str) else value

    present.sort(key=key, reverse=order == "desc")
    return present + missing


def build_document(
    items: Iterable[CatalogItem],
    order_by: str = "title",
    order: str = "asc",
    file_url: FileUrl | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Assemble the catalog document.

    Returns:
        ``{movies, total, generated_at, config}``
    """
    movies = sort_items([item_to_dict(i, file_url) for i in items], order_by, order)
    generated_at = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "movies": movies,
        "total": len(movies),
        "generated_at": generated_at,
        "config": {"order_by": order_by, "order": order},
    }


def write_catalog(document: dict[str, Any], path: str | Path) -> Path:
    """Write the document as UTF-8 JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)
    log.info("Wrote %d entries to %s", document["total"], path)
    return path


def load_catalog(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
