"""Directory classification from one directory's immediate children.

Pure Python, no I/O.  ``classify_directory`` looks only at the entries
it is given; recursion belongs to the walker.
"""
from __future__ import annotations

import logging
import posixpath
import re
from typing import Iterable

from .models import DirectoryRecord, DirectoryType, FileRef, RawEntry, SubdirectoryRef
from .parser import (
    extract_title,
    has_episode_markers,
    is_video_file,
    match_season_folder,
    parse_name,
)
from .presets import DEFAULT, PatternSet

log = logging.getLogger(__name__)

UNKNOWN_SERIES = "Unknown Series"

# System folders and bonus material. Compared case-insensitively against
# the whole folder name.
IGNORED_DIRECTORIES = frozenset({
    ".ds_store", "thumbs.db", "@eadir", ".@__thumb",
    "extras", "behind the scenes", "deleted scenes", "featurettes",
    "interviews", "scenes", "shorts", "trailers", "other",
    "sample", "samples",
})

# Roles that mark a directory as a category root rather than a movie shelf.
_CATEGORY_ROLES = ("tvShows", "documentaries", "anime")


# ------------------------------------------------------------------
# Name helpers
# ------------------------------------------------------------------

def normalize_title(title: str) -> str:
    """Grouping key for titles: case-folded, punctuation and spaces removed.

    CJK characters count as word characters and are kept.
    """
    return re.sub(r'[\W_]+', '', title.casefold())


def is_ignored_directory(name: str, ignore: Iterable[str] = IGNORED_DIRECTORIES) -> bool:
    if name.startswith(('.', '@')):
        return True
    return name.strip().lower() in ignore


def is_season_marker(name: str, config: PatternSet = DEFAULT) -> bool:
    return match_season_folder(name, config) is not None


def role_for_directory(name: str, config: PatternSet = DEFAULT) -> str:
    """Role a folder name suggests: seasons, a special category, or content."""
    if is_season_marker(name, config):
        return "seasons"
    for role, pattern in config.special_directories.items():
        if pattern.search(name.strip()):
            return role
    return "content"


def extract_series_name(path: str, config: PatternSet = DEFAULT) -> str:
    """
    Series title for a folder path.

    Trailing season-folder segments are dropped and the nearest remaining
    segment is cleaned like a file title.

    Args:
        path: Slash separated folder path
        config: Preset providing the season folder patterns

    Returns:
        The cleaned series name, or "Unknown Series" when every segment
        is a season marker.
    """
    segments = [s for s in path.split('/') if s.strip()]
    while segments and is_season_marker(segments[-1], config):
        segments.pop()
    if not segments:
        return UNKNOWN_SERIES
    return extract_title(segments[-1], strip_extension=False)


# ------------------------------------------------------------------
# Classification
# ------------------------------------------------------------------

def _verdict(
    movie_count: int,
    tv_count: int,
    structural_tv: bool,
    season_folders: int,
    has_movie_files: bool,
    subdirectories: list[SubdirectoryRef],
) -> DirectoryType:
    tv_type: DirectoryType = "tv_show" if season_folders else "tv_season"

    if movie_count > tv_count:
        if has_movie_files:
            return "movie_collection"
        if any(s.role in _CATEGORY_ROLES for s in subdirectories):
            return "content_library"
        return "movie_library"
    if tv_count > movie_count:
        return tv_type
    if movie_count == 0:
        return "unknown"
    # Tie: folder structure outweighs filename evidence.
    if structural_tv:
        return tv_type
    return "mixed_content"


def classify_directory(
    entries: Iterable[RawEntry],
    config: PatternSet = DEFAULT,
    path: str = "",
    depth: int = 0,
    ignore: Iterable[str] = IGNORED_DIRECTORIES,
) -> DirectoryRecord:
    """
    Classify one directory from its immediate children.

    Args:
        entries: Listing of the directory
        config: Pattern preset to consult
        path: Path of the directory, used to build child paths
        depth: Depth below the walk root
        ignore: Folder names to skip

    Returns:
        DirectoryRecord with tallies and verdict
    """
    video_files: list[FileRef] = []
    subdirectories: list[SubdirectoryRef] = []
    movie_count = tv_count = season_folders = 0
    has_movie_files = False
    structural_tv = False

    for entry in entries:
        child_path = posixpath.join(path, entry.name)

        if entry.is_directory:
            if is_ignored_directory(entry.name, ignore):
                log.debug("Skipping ignored directory %s", child_path)
                continue
            role = role_for_directory(entry.name, config)
            subdirectories.append(SubdirectoryRef(entry.name, child_path, role))
            if role == "seasons":
                season_folders += 1
                tv_count += 1
                structural_tv = True
            elif has_episode_markers(entry.name, config):
                tv_count += 1
            else:
                movie_count += 1
            continue

        if not is_video_file(entry.name, config):
            continue

        metadata = parse_name(entry.name, config)
        video_files.append(FileRef(
            name=entry.name,
            path=child_path,
            metadata=metadata,
            signature=entry.signature,
            size=entry.size,
        ))
        if metadata.type == "episode":
            tv_count += 1
            if metadata.has_season_episode:
                structural_tv = True
        elif metadata.type == "movie":
            movie_count += 1
            has_movie_files = True

    directory_type = _verdict(
        movie_count, tv_count, structural_tv, season_folders,
        has_movie_files, subdirectories,
    )
    log.debug(
        "%s -> %s (movie=%d tv=%d seasons=%d)",
        path or "/", directory_type, movie_count, tv_count, season_folders,
    )
    return DirectoryRecord(
        path=path,
        depth=depth,
        type=directory_type,
        video_files=video_files,
        subdirectories=subdirectories,
        movie_count=movie_count,
        tv_count=tv_count,
        season_folder_count=season_folders,
    )
