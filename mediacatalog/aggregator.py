"""Candidate aggregation.

Pass A (``merge_season_fragments``) runs before enrichment and merges the
season fragments of one series found under different paths.  Pass B
(``aggregate_versions``) runs after enrichment and folds entries sharing
a title and media type into version groups.
"""
from __future__ import annotations

import logging
import posixpath
import re
from typing import Iterable, Sequence, Union

from .classifier import UNKNOWN_SERIES, extract_series_name, is_season_marker, normalize_title
from .models import (
    AggregatedSeries,
    Candidate,
    CatalogEntry,
    FileRef,
    MovieCandidate,
    MovieEntry,
    SeasonFragment,
    TvCandidate,
    TvEntry,
    Version,
    VersionGroup,
)
from .parser import parse_name
from .presets import DEFAULT, PatternSet

log = logging.getLogger(__name__)

MergedCandidate = Union[MovieCandidate, AggregatedSeries]

# Stripped from series names before grouping: parenthesised notes, season
# range labels, resolutions and language/subtitle labels.
SERIES_NAME_NOISE = [
    r'[(（].*?[)）]',
    r'S\d{2}-S\d{2}季全集',
    r'\d{4}P',
    r'[中英日韩]语.*?字',
]

_SEASON_LABEL = re.compile(r'S\d{2}|第.+季', re.IGNORECASE)
_SEASON_EPISODE_TOKEN = re.compile(r'S\d{2}E\d{2}|第.*季.*集', re.IGNORECASE)


# ------------------------------------------------------------------
# Pass A -- season fragments
# ------------------------------------------------------------------

def series_name(candidate: TvCandidate, config: PatternSet = DEFAULT) -> str:
    """Series name of a TV candidate, recovered from its path when the
    title is only a season marker."""
    name = candidate.title
    if is_season_marker(name, config):
        name = extract_series_name(candidate.path, config)
    for pattern in SERIES_NAME_NOISE:
        name = re.sub(pattern, '', name)
    name = re.sub(r'\s+', ' ', name).strip()
    return name or candidate.title.strip() or UNKNOWN_SERIES


def _series_path(candidate: TvCandidate, config: PatternSet) -> str:
    if is_season_marker(posixpath.basename(candidate.path), config):
        return posixpath.dirname(candidate.path)
    return candidate.path


def _combine_seasons(series: AggregatedSeries) -> list[SeasonFragment]:
    """Sort fragments by season and fold equal season numbers together."""
    combined: list[SeasonFragment] = []
    for fragment in sorted(series.seasons, key=lambda s: s.season_number):
        if combined and combined[-1].season_number == fragment.season_number:
            log.warning(
                "Season %d of %r found under several paths; keeping all episodes",
                fragment.season_number, series.title,
            )
            combined[-1].episodes.extend(fragment.episodes)
        else:
            combined.append(SeasonFragment(fragment.season_number, list(fragment.episodes)))
    for fragment in combined:
        fragment.episodes.sort(key=lambda e: e.episode_number)
    return combined


def merge_season_fragments(
    candidates: Iterable[Candidate],
    config: PatternSet = DEFAULT,
) -> list[MergedCandidate]:
    """
    Merge TV candidates that name the same series.

    Movies pass through untouched.  Each series appears at the position
    of its first fragment, so discovery order is kept.

    Args:
        candidates: Output of one or more walks
        config: Preset used to recognise season markers

    Returns:
        Movies and AggregatedSeries in discovery order
    """
    merged: list[MergedCandidate] = []
    groups: dict[str, AggregatedSeries] = {}

    for candidate in candidates:
        if isinstance(candidate, MovieCandidate):
            merged.append(candidate)
            continue

        name = series_name(candidate, config)
        key = normalize_title(name) or name
        series = groups.get(key)
        if series is None:
            series = AggregatedSeries(title=name, path=_series_path(candidate, config))
            groups[key] = series
            merged.append(series)
        else:
            log.info("Merging %s into series %r", candidate.path, series.title)
        series.source_paths.append(candidate.path)
        series.seasons.extend(candidate.seasons)

    for series in groups.values():
        series.seasons = _combine_seasons(series)

    log.info(
        "Season merge: %d movies, %d series from %d fragments",
        len(merged) - len(groups),
        len(groups),
        sum(len(s.source_paths) for s in groups.values()),
    )
    return merged


def reclassify_single_episodes(
    items: Iterable[MergedCandidate],
    config: PatternSet = DEFAULT,
) -> list[MergedCandidate]:
    """Turn one-episode series without any season evidence into movies."""
    result: list[MergedCandidate] = []
    for item in items:
        if not isinstance(item, AggregatedSeries) or not _looks_like_movie(item, config):
            result.append(item)
            continue

        episode = item.seasons[0].episodes[0]
        metadata = parse_name(episode.name, config)
        log.info("Reclassifying %r from series to movie", item.title)
        result.append(MovieCandidate(
            title=item.title,
            path=episode.path,
            files=[FileRef(
                name=episode.name,
                path=episode.path,
                metadata=metadata,
                signature=episode.signature,
                size=episode.size,
            )],
            year=metadata.year,
        ))
    return result


def _looks_like_movie(series: AggregatedSeries, config: PatternSet) -> bool:
    if len(series.seasons) != 1 or len(series.seasons[0].episodes) != 1:
        return False
    if _SEASON_LABEL.search(series.title):
        return False
    for path in series.source_paths or [series.path]:
        if any(is_season_marker(segment, config) for segment in path.split('/') if segment):
            return False
    episode = series.seasons[0].episodes[0]
    return not _SEASON_EPISODE_TOKEN.search(episode.name)


# ------------------------------------------------------------------
# Pass B -- version groups
# ------------------------------------------------------------------

def version_name(entry: CatalogEntry) -> str:
    """Human readable label for one member of a version group."""
    if entry.id.startswith("movie_"):
        return "Movie Version"
    if entry.id.startswith("tv_"):
        return "TV Version"
    if entry.directory_type == "movie":
        return "Movie Version"
    if entry.directory_type == "tv":
        return "TV Version"
    return "Default Version"


def select_main_version(members: Sequence[CatalogEntry]) -> CatalogEntry:
    """Prefer an entry with files, then one with seasons, then the first."""
    for member in members:
        if isinstance(member, MovieEntry) and member.files:
            return member
    for member in members:
        if isinstance(member, TvEntry) and member.seasons:
            return member
    return members[0]


def _version(entry: CatalogEntry, is_main: bool) -> Version:
    return Version(
        id=entry.id,
        version_name=version_name(entry),
        is_main=is_main,
        media_type=entry.media_type,
        entry=entry,
    )


def aggregate_versions(
    entries: Iterable[CatalogEntry],
) -> list[Union[CatalogEntry, VersionGroup]]:
    """
    Group entries by normalized title and media type.

    Single members are returned as they are; larger groups become a
    VersionGroup.  Output order follows the first member of each group.
    """
    groups: dict[tuple[str, str], list[CatalogEntry]] = {}
    total = 0
    for entry in entries:
        total += 1
        key = (normalize_title(entry.title) or entry.title, entry.media_type)
        groups.setdefault(key, []).append(entry)

    result: list[Union[CatalogEntry, VersionGroup]] = []
    for members in groups.values():
        if len(members) == 1:
            result.append(members[0])
            continue

        main = select_main_version(members)
        group = VersionGroup(
            main_version=_version(main, is_main=True),
            other_versions=[_version(m, is_main=False) for m in members if m is not main],
        )
        log.info(
            "Grouped %d versions of %r (main: %s)",
            group.aggregated_count, main.title, group.main_version.version_name,
        )
        result.append(group)

    log.info("Version grouping: %d entries -> %d", total, len(result))
    return result
