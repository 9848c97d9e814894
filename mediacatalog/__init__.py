"""
mediacatalog - Media catalog builder

Classifies movie/TV directory trees into a catalog enriched with TMDB
metadata.
"""
from .models import (
    RawEntry,
    FileMetadata,
    DirectoryRecord,
    MovieCandidate,
    TvCandidate,
    AggregatedSeries,
    EnrichedRecord,
    MovieEntry,
    TvEntry,
    VersionGroup,
    TreeAnalysis,
)
from .presets import PatternSet, PresetRegistry
from .parser import parse_name, extract_title
from .classifier import classify_directory, normalize_title
from .walker import walk
from .aggregator import merge_season_fragments, aggregate_versions
from .enrichment import enrich
from .pipeline import build_catalog
from .tmdb import TMDBClient, TMDBError
from .listing import AListClient, LocalDirectoryLister, ListingError
from .config import ConfigError, Settings
from .cache import Cache

__version__ = "0.1.0"
__all__ = [
    "RawEntry",
    "FileMetadata",
    "DirectoryRecord",
    "MovieCandidate",
    "TvCandidate",
    "AggregatedSeries",
    "EnrichedRecord",
    "MovieEntry",
    "TvEntry",
    "VersionGroup",
    "TreeAnalysis",
    "PatternSet",
    "PresetRegistry",
    "parse_name",
    "extract_title",
    "classify_directory",
    "normalize_title",
    "walk",
    "merge_season_fragments",
    "aggregate_versions",
    "enrich",
    "build_catalog",
    "TMDBClient",
    "TMDBError",
    "AListClient",
    "LocalDirectoryLister",
    "ListingError",
    "ConfigError",
    "Settings",
    "Cache",
]
