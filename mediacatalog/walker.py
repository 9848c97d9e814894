"""Tree walking: list, classify and collect candidates for one root.

The walk is breadth first over an explicit worklist.  Each level is
listed concurrently (bounded by a semaphore) and the results are folded
into the ``TreeAnalysis`` in listing order by this coroutine alone, so
the accumulator has a single writer.
"""
from __future__ import annotations

import asyncio
import logging
import posixpath
from collections import deque
from typing import Awaitable, Callable, Iterable

from .classifier import (
    IGNORED_DIRECTORIES,
    classify_directory,
    extract_series_name,
    normalize_title,
)
from .models import (
    Candidate,
    DirectoryRecord,
    EpisodeRef,
    FileRef,
    MovieCandidate,
    RawEntry,
    SeasonFragment,
    Structure,
    TreeAnalysis,
    TreeStatistics,
    TvCandidate,
)
from .parser import match_season_folder, split_title_year
from .presets import DEFAULT, PatternSet

log = logging.getLogger(__name__)

ListDirectory = Callable[[str], Awaitable[list[RawEntry]]]

DEFAULT_MAX_DEPTH = 10
DEFAULT_CONCURRENCY = 4

# Thresholds for path suggestions.
DEEP_TREE_DEPTH = 5
CROWDED_DIRECTORY_FILES = 100


# ------------------------------------------------------------------
# Walk
# ------------------------------------------------------------------

async def walk(
    list_directory: ListDirectory,
    root_path: str,
    config: PatternSet = DEFAULT,
    max_depth: int = DEFAULT_MAX_DEPTH,
    concurrency: int = DEFAULT_CONCURRENCY,
    ignore: Iterable[str] = IGNORED_DIRECTORIES,
) -> TreeAnalysis:
    """
    Walk ``root_path`` and classify every directory below it.

    A listing failure never aborts the walk: the path is logged, recorded
    in ``failed_paths`` and treated as empty.  Directories deeper than
    ``max_depth`` are not listed and end up in ``truncated_paths``.

    Args:
        list_directory: Coroutine returning the entries of a path
        root_path: Where to start
        config: Pattern preset for parsing and classification
        max_depth: Deepest level that is still listed (root is 0)
        concurrency: Maximum listings in flight at once
        ignore: Folder names never descended into

    Returns:
        TreeAnalysis with records, verdict, statistics and candidates
    """
    analysis = TreeAnalysis(root_path=root_path)
    semaphore = asyncio.Semaphore(max(1, concurrency))
    ignore = frozenset(ignore)

    async def fetch(path: str) -> tuple[list[RawEntry], Exception | None]:
        async with semaphore:
            try:
                return list(await list_directory(path)), None
            except Exception as exc:
                return [], exc

    log.info("Walking %s (preset=%s, max_depth=%d)", root_path, config.name, max_depth)

    level: list[tuple[str, int]] = [(root_path, 0)]
    while level:
        results = await asyncio.gather(*(fetch(path) for path, _ in level))
        next_level: list[tuple[str, int]] = []

        for (path, depth), (entries, error) in zip(level, results):
            if error is not None:
                log.warning("Listing %s failed, treating as empty: %s", path, error)
                analysis.failed_paths.append(path)
                continue
            if not entries:
                continue

            record = classify_directory(entries, config, path, depth, ignore)
            analysis.records[path] = record

            for sub in record.subdirectories:
                if depth + 1 > max_depth:
                    log.warning(
                        "Depth limit %d reached, not descending into %s",
                        max_depth, sub.path,
                    )
                    analysis.truncated_paths.append(sub.path)
                    continue
                next_level.append((sub.path, depth + 1))

        level = next_level

    _categorize(analysis)
    analysis.statistics = compute_statistics(analysis.records)
    analysis.structure = determine_structure(analysis.statistics)
    analysis.suggestions = path_suggestions(analysis)
    analysis.candidates = CandidateBuilder(analysis.records, config).build(root_path)

    log.info(
        "Walked %s: %d directories, %d video files, structure=%s, %d candidates",
        root_path,
        analysis.statistics.total_directories,
        analysis.statistics.total_files,
        analysis.structure,
        len(analysis.candidates),
    )
    return analysis


# ------------------------------------------------------------------
# Verdicts and statistics
# ------------------------------------------------------------------

def category_for(record: DirectoryRecord) -> str:
    if record.type == "mixed_content":
        return "mixed"
    if record.is_tv:
        return "tv_shows"
    if record.is_movie:
        return "movies"
    return "unknown"


def _categorize(analysis: TreeAnalysis) -> None:
    for path, record in analysis.records.items():
        analysis.categories[category_for(record)].append(path)


def compute_statistics(records: dict[str, DirectoryRecord]) -> TreeStatistics:
    stats = TreeStatistics()
    stats.total_directories = len(records)
    for record in records.values():
        stats.total_files += len(record.video_files)
        stats.max_depth = max(stats.max_depth, record.depth)
        category = category_for(record)
        if category == "movies":
            stats.movie_directories += 1
        elif category == "tv_shows":
            stats.tv_directories += 1
        elif category == "mixed":
            stats.mixed_directories += 1
        else:
            stats.unknown_directories += 1
    if stats.total_directories:
        stats.avg_files_per_dir = round(stats.total_files / stats.total_directories, 2)
    return stats


def determine_structure(stats: TreeStatistics) -> Structure:
    """Whole-tree verdict from per-category directory counts."""
    if stats.mixed_directories:
        return "mixed"
    if stats.movie_directories and stats.tv_directories:
        return "categorized"
    if stats.movie_directories:
        return "movies_only"
    if stats.tv_directories:
        return "tv_only"
    if stats.unknown_directories:
        return "unstructured"
    return "empty"


def path_suggestions(analysis: TreeAnalysis) -> list[str]:
    """Human readable hints about how the tree is organised."""
    suggestions = []
    if analysis.structure == "mixed":
        suggestions.append(
            "Mixed movie and TV content detected; consider configuring "
            "movie and TV directories separately"
        )
    elif analysis.structure == "unstructured":
        suggestions.append(
            "Directory structure is unclear; consider reorganising the files"
        )
    elif analysis.structure == "categorized":
        suggestions.append(
            "Directory structure is well organised; content types can be "
            "configured separately"
        )

    if analysis.statistics.max_depth > DEEP_TREE_DEPTH:
        suggestions.append("Directory tree is very deep, which slows down scanning")
    if analysis.statistics.avg_files_per_dir > CROWDED_DIRECTORY_FILES:
        suggestions.append(
            "Directories hold many files each; consider splitting them into subfolders"
        )
    if analysis.failed_paths:
        suggestions.append(
            f"{len(analysis.failed_paths)} directories could not be listed"
        )
    return suggestions


# ------------------------------------------------------------------
# Candidates
# ------------------------------------------------------------------

class CandidateBuilder:
    """Turn the records of one walk into movie and TV candidates.

    Usage::

        candidates = CandidateBuilder(analysis.records, config).build(root)
    """

    def __init__(self, records: dict[str, DirectoryRecord], config: PatternSet = DEFAULT):
        self.records = records
        self.config = config

    def build(self, root_path: str) -> list[Candidate]:
        root = self.records.get(root_path)
        if root is None:
            return []
        if self._is_single_show(root):
            return [self._tv_candidate(root)]

        candidates = self._split_loose_files(root.video_files, root_path)
        stack = [sub.path for sub in reversed(root.subdirectories)]
        while stack:
            path = stack.pop()
            record = self.records.get(path)
            if record is None:
                continue

            if self._is_show_folder(record):
                candidates.append(self._tv_candidate(record))
            elif record.type == "mixed_content" or record.is_tv:
                # Mixed folders, and TV verdicts carried only by
                # episode-named subfolders, are split and descended.
                candidates.extend(self._split_loose_files(record.video_files, path))
                stack.extend(sub.path for sub in reversed(record.subdirectories))
            elif record.video_files:
                title, year = split_title_year(posixpath.basename(path), self.config)
                candidates.append(MovieCandidate(
                    title=title,
                    path=path,
                    files=self._descendant_files(path),
                    year=year,
                ))
            else:
                stack.extend(sub.path for sub in reversed(record.subdirectories))
        return candidates

    # -- helpers -------------------------------------------------------

    def _season_number(self, path: str) -> int | None:
        return match_season_folder(posixpath.basename(path), self.config)

    def _is_single_show(self, root: DirectoryRecord) -> bool:
        """A root is one show when it is a season folder or has season folders.

        Loose files at any other root are split by their own titles.
        """
        return self._season_number(root.path) is not None or root.type == "tv_show"

    def _is_show_folder(self, record: DirectoryRecord) -> bool:
        """Below the root, episode files of its own also make a folder a show."""
        if self._is_single_show(record):
            return True
        return record.is_tv and any(f.metadata.type == "episode" for f in record.video_files)

    def _descendant_files(self, path: str) -> list[FileRef]:
        """All video files at or below ``path``, in walk order."""
        files: list[FileRef] = []
        queue = deque([path])
        while queue:
            record = self.records.get(queue.popleft())
            if record is None:
                continue
            files.extend(record.video_files)
            queue.extend(sub.path for sub in record.subdirectories)
        return files

    def _tv_candidate(self, record: DirectoryRecord) -> TvCandidate:
        season = self._season_number(record.path)
        files = self._descendant_files(record.path)
        if season is not None:
            # The folder name already settled the season.
            title = posixpath.basename(record.path)
            seasons = [SeasonFragment(season, self._episodes(files))]
        else:
            title = extract_series_name(record.path, self.config)
            seasons = self._season_fragments(record.path, files)
        return TvCandidate(title=title, path=record.path, seasons=seasons)

    def _season_for_file(self, show_path: str, ref: FileRef) -> int:
        relative = posixpath.relpath(posixpath.dirname(ref.path), show_path)
        if relative != ".":
            for segment in reversed(relative.split("/")):
                season = match_season_folder(segment, self.config)
                if season is not None:
                    return season
        if ref.metadata.season is not None:
            return ref.metadata.season
        return 1

    def _season_fragments(self, show_path: str, files: list[FileRef]) -> list[SeasonFragment]:
        by_season: dict[int, list[FileRef]] = {}
        for ref in files:
            by_season.setdefault(self._season_for_file(show_path, ref), []).append(ref)
        return [
            SeasonFragment(number, self._episodes(refs))
            for number, refs in sorted(by_season.items())
        ]

    def _episodes(self, files: list[FileRef]) -> list[EpisodeRef]:
        """Episode refs sorted by number; unnumbered files go after the rest."""
        numbered = [f for f in files if f.metadata.episode is not None]
        unnumbered = sorted(
            (f for f in files if f.metadata.episode is None),
            key=lambda f: f.name.casefold(),
        )
        next_number = max((f.metadata.episode for f in numbered), default=0)

        episodes = []
        for ref in numbered:
            episodes.append(self._episode_ref(ref, ref.metadata.episode))
        for ref in unnumbered:
            next_number += 1
            episodes.append(self._episode_ref(ref, next_number))
        episodes.sort(key=lambda e: (e.episode_number, e.name.casefold()))
        return episodes

    @staticmethod
    def _episode_ref(ref: FileRef, number: int) -> EpisodeRef:
        return EpisodeRef(
            episode_number=number,
            name=ref.name,
            title=ref.metadata.title,
            path=ref.path,
            signature=ref.signature,
            size=ref.size,
        )

    def _split_loose_files(self, files: list[FileRef], parent_path: str) -> list[Candidate]:
        """Movies become one candidate each; episodes are grouped by series."""
        candidates: list[Candidate] = []
        shows: dict[str, tuple[str, list[FileRef]]] = {}
        for ref in files:
            if ref.metadata.type == "episode":
                key = normalize_title(ref.metadata.title)
                shows.setdefault(key, (ref.metadata.title, []))[1].append(ref)
                continue
            title, year = split_title_year(ref.name, self.config, strip_extension=True)
            candidates.append(MovieCandidate(title=title, path=ref.path, files=[ref], year=year))

        for title, refs in shows.values():
            by_season: dict[int, list[FileRef]] = {}
            for ref in refs:
                by_season.setdefault(ref.metadata.season or 1, []).append(ref)
            candidates.append(TvCandidate(
                title=title,
                path=parent_path,
                seasons=[
                    SeasonFragment(number, self._episodes(group))
                    for number, group in sorted(by_season.items())
                ],
            ))
        return candidates
