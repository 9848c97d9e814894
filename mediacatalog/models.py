"""Data models for the mediacatalog package."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

FileType = Literal["movie", "episode", "unknown"]
DirectoryType = Literal[
    "movie_collection",
    "movie_library",
    "tv_season",
    "tv_show",
    "mixed_content",
    "content_library",
    "unknown",
]
DirectoryRole = Literal[
    "seasons", "movies", "tvShows", "documentaries", "anime", "content",
]
Structure = Literal[
    "movies_only", "tv_only", "categorized", "mixed", "unstructured", "empty",
]
MediaTypeHint = Literal["movie", "tv", "mixed"]


@dataclass(frozen=True)
class RawEntry:
    """One item returned by a directory listing."""
    name: str
    is_directory: bool
    signature: str | None = None
    size: int | None = None


@dataclass
class FileMetadata:
    """Structured information parsed from a single file or folder name."""
    raw_name: str
    type: FileType
    title: str
    season: int | None = None
    episode: int | None = None
    year: int | None = None
    quality: str | None = None
    extension: str | None = None

    @property
    def has_season_episode(self) -> bool:
        return self.season is not None and self.episode is not None


@dataclass
class FileRef:
    """A video file located in the tree, with its parsed metadata."""
    name: str
    path: str
    metadata: FileMetadata
    signature: str | None = None
    size: int | None = None


@dataclass
class SubdirectoryRef:
    """A child directory and the role its name suggests."""
    name: str
    path: str
    role: DirectoryRole


@dataclass
class DirectoryRecord:
    """Classification of one directory from its immediate children."""
    path: str
    depth: int
    type: DirectoryType
    video_files: list[FileRef] = field(default_factory=list)
    subdirectories: list[SubdirectoryRef] = field(default_factory=list)
    movie_count: int = 0
    tv_count: int = 0
    season_folder_count: int = 0

    @property
    def is_tv(self) -> bool:
        return self.type in ("tv_season", "tv_show")

    @property
    def is_movie(self) -> bool:
        return self.type in ("movie_collection", "movie_library")


@dataclass
class EpisodeRef:
    """One episode file inside a season fragment."""
    episode_number: int
    name: str
    title: str
    path: str
    signature: str | None = None
    size: int | None = None


@dataclass
class SeasonFragment:
    """Episodes of one season found under a single source path."""
    season_number: int
    episodes: list[EpisodeRef] = field(default_factory=list)


@dataclass
class MovieCandidate:
    """A classified movie awaiting enrichment."""
    title: str
    path: str
    files: list[FileRef] = field(default_factory=list)
    year: int | None = None

    media_type_guess: Literal["movie"] = "movie"


@dataclass
class TvCandidate:
    """A classified TV series (or fragment of one) awaiting enrichment."""
    title: str
    path: str
    seasons: list[SeasonFragment] = field(default_factory=list)

    media_type_guess: Literal["tv"] = "tv"

    @property
    def episode_count(self) -> int:
        return sum(len(s.episodes) for s in self.seasons)


Candidate = Union[MovieCandidate, TvCandidate]


@dataclass
class AggregatedSeries:
    """Season fragments of one series merged across source paths."""
    title: str
    path: str
    seasons: list[SeasonFragment] = field(default_factory=list)
    source_paths: list[str] = field(default_factory=list)

    media_type_guess: Literal["tv"] = "tv"

    @property
    def episode_count(self) -> int:
        return sum(len(s.episodes) for s in self.seasons)


@dataclass
class EnrichedRecord:
    """Canonical metadata returned by the enrichment service."""
    id: int
    title: str
    media_type: Literal["movie", "tv"]
    original_title: str = ""
    overview: str = ""
    poster_path: str | None = None
    release_date: str | None = None
    genre_names: list[str] = field(default_factory=list)
    vote_average: float = 0.0
    popularity: float = 0.0
    confidence: float = 0.0


@dataclass
class MovieEntry:
    """A movie in the final catalog. Never carries seasons."""
    id: str
    title: str
    files: list[FileRef] = field(default_factory=list)
    original_path: str = ""
    tmdb_id: int | None = None
    original_title: str = ""
    overview: str = ""
    poster_path: str | None = None
    release_date: str | None = None
    genre_names: list[str] = field(default_factory=list)
    vote_average: float = 0.0
    enriched: bool = False

    media_type: Literal["movie"] = "movie"
    directory_type: Literal["movie"] = "movie"

    @property
    def file_count(self) -> int:
        return len(self.files)


@dataclass
class TvEntry:
    """A TV series in the final catalog. Never carries bare files."""
    id: str
    title: str
    seasons: list[SeasonFragment] = field(default_factory=list)
    original_path: str = ""
    source_paths: list[str] = field(default_factory=list)
    tmdb_id: int | None = None
    original_title: str = ""
    overview: str = ""
    poster_path: str | None = None
    release_date: str | None = None
    genre_names: list[str] = field(default_factory=list)
    vote_average: float = 0.0
    enriched: bool = False

    media_type: Literal["tv"] = "tv"
    directory_type: Literal["tv"] = "tv"

    @property
    def episode_count(self) -> int:
        return sum(len(s.episodes) for s in self.seasons)


CatalogEntry = Union[MovieEntry, TvEntry]


@dataclass
class Version:
    """One member of a version group."""
    id: str
    version_name: str
    is_main: bool
    media_type: str
    entry: CatalogEntry

    @property
    def files(self) -> list[FileRef]:
        return self.entry.files if isinstance(self.entry, MovieEntry) else []

    @property
    def seasons(self) -> list[SeasonFragment]:
        return self.entry.seasons if isinstance(self.entry, TvEntry) else []


@dataclass
class VersionGroup:
    """Catalog entries resolved to the same title and media type."""
    main_version: Version
    other_versions: list[Version] = field(default_factory=list)
    is_aggregated: bool = True

    @property
    def aggregated_count(self) -> int:
        return 1 + len(self.other_versions)

    @property
    def versions(self) -> list[Version]:
        return [self.main_version, *self.other_versions]

    @property
    def title(self) -> str:
        return self.main_version.entry.title

    @property
    def media_type(self) -> str:
        return self.main_version.media_type


@dataclass
class TreeStatistics:
    """Counters gathered during one walk."""
    total_directories: int = 0
    total_files: int = 0
    max_depth: int = 0
    avg_files_per_dir: float = 0.0
    movie_directories: int = 0
    tv_directories: int = 0
    mixed_directories: int = 0
    unknown_directories: int = 0


@dataclass
class TreeAnalysis:
    """Everything one walk of a root path produced."""
    root_path: str
    structure: Structure = "empty"
    records: dict[str, DirectoryRecord] = field(default_factory=dict)
    categories: dict[str, list[str]] = field(default_factory=lambda: {
        "movies": [], "tv_shows": [], "mixed": [], "unknown": [],
    })
    statistics: TreeStatistics = field(default_factory=TreeStatistics)
    candidates: list[Candidate] = field(default_factory=list)
    failed_paths: list[str] = field(default_factory=list)
    truncated_paths: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """Counts suitable for logging or a report."""
        return {
            "root_path": self.root_path,
            "structure": self.structure,
            "directories": self.statistics.total_directories,
            "video_files": self.statistics.total_files,
            "movies": sum(isinstance(c, MovieCandidate) for c in self.candidates),
            "tv_shows": sum(isinstance(c, TvCandidate) for c in self.candidates),
            "failed": len(self.failed_paths),
            "truncated": len(self.truncated_paths),
        }
