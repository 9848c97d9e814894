#!/usr/bin/env python3
"""
mediacatalog - Media catalog builder

A CLI tool that walks movie/TV directory trees, classifies what it finds
and writes a JSON catalog enriched with TMDB metadata.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .cache import Cache
from .catalog import build_document, write_catalog
from .config import ConfigError, RootConfig, Settings
from .listing import AListClient, LocalDirectoryLister
from .pipeline import analyze_roots, build_catalog
from .presets import PresetRegistry
from .tmdb import TMDBClient, TMDBError

log = logging.getLogger(__name__)


def print_analysis(analysis, recommended: str) -> None:
    """Print the report for one walked root."""
    stats = analysis.statistics
    print(f"Root: {analysis.root_path}")
    print(f"  Structure:        {analysis.structure}")
    print(f"  Directories:      {stats.total_directories}")
    print(f"  Video files:      {stats.total_files}")
    print(f"  Max depth:        {stats.max_depth}")
    print(f"  Files per dir:    {stats.avg_files_per_dir}")
    print(
        f"  Movie/TV/Mixed/Unknown dirs: {stats.movie_directories}/"
        f"{stats.tv_directories}/{stats.mixed_directories}/{stats.unknown_directories}"
    )
    summary = analysis.summary()
    print(f"  Candidates:       {summary['movies']} movies, {summary['tv_shows']} TV shows")
    if analysis.failed_paths:
        print(f"  [WARN] Could not list: {', '.join(analysis.failed_paths)}")
    if analysis.truncated_paths:
        print(f"  [WARN] Not descended (too deep): {len(analysis.truncated_paths)} directories")
    for suggestion in analysis.suggestions:
        print(f"  - {suggestion}")
    print(f"  Recommended preset: {recommended}")


def _load_settings(parsed: argparse.Namespace) -> Settings:
    settings = Settings.load(parsed.config)
    if parsed.preset:
        settings.set("preset", parsed.preset)
    if parsed.max_depth is not None:
        settings.set("max_depth", parsed.max_depth)
    if getattr(parsed, "output", None):
        settings.set("output", str(parsed.output))
    settings.validate()
    return settings


def _roots(parsed: argparse.Namespace, settings: Settings) -> list[RootConfig]:
    if parsed.local:
        return [RootConfig(path=str(p)) for p in parsed.local]
    roots = settings.roots
    if not roots:
        raise ConfigError("No roots configured. Add \"roots\" to the settings file or use --local.")
    return roots


def _lister(parsed: argparse.Namespace, settings: Settings):
    if parsed.local:
        for path in parsed.local:
            if not Path(path).is_dir():
                raise ConfigError(f"Not a directory: {path}")
        return LocalDirectoryLister()
    settings.require_alist()
    alist = settings.alist
    return AListClient(alist["url"], alist["username"], alist["password"])


def _presets(settings: Settings) -> PresetRegistry:
    presets = PresetRegistry()
    name = settings.get("preset")
    if name not in presets:
        log.warning("Unknown preset %r, using 'default'", name)
    return presets


def cmd_scan(parsed: argparse.Namespace) -> int:
    settings = _load_settings(parsed)
    roots = _roots(parsed, settings)
    lister = _lister(parsed, settings)
    presets = _presets(settings)

    lookup = None
    if not parsed.no_tmdb:
        client = TMDBClient(
            api_key=settings.get("tmdb_api_key") or None,
            cache=Cache(parsed.cache_dir),
            language=settings.get("tmdb_language"),
        )
        lookup = client.async_lookup

    items = asyncio.run(build_catalog(
        lister.list_directory,
        roots,
        presets,
        lookup=lookup,
        default_preset=settings.get("preset"),
        max_depth=settings.get("max_depth"),
        concurrency=settings.get("concurrency"),
    ))
    document = build_document(
        items,
        order_by=settings.get("order_by"),
        order=settings.get("order"),
        file_url=lister.file_url,
    )
    path = write_catalog(document, settings.get("output"))
    print(f"Wrote {document['total']} entries to {path}")
    return 0


def cmd_analyze(parsed: argparse.Namespace) -> int:
    settings = _load_settings(parsed)
    roots = _roots(parsed, settings)
    lister = _lister(parsed, settings)
    presets = _presets(settings)

    analyses = asyncio.run(analyze_roots(
        lister.list_directory,
        roots,
        presets,
        default_preset=settings.get("preset"),
        max_depth=settings.get("max_depth"),
        concurrency=settings.get("concurrency"),
    ))
    for analysis in analyses:
        print_analysis(analysis, presets.recommend(analysis))
        print()
    return 0


def cmd_presets(parsed: argparse.Namespace) -> int:
    presets = PresetRegistry()
    for name in presets.names():
        print(f"{name:<10} {presets.get(name).description}")
    return 0


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="JSON settings file"
    )
    parser.add_argument(
        "--local",
        nargs="+",
        type=Path,
        metavar="DIR",
        help="Walk local directories instead of the configured AList roots"
    )
    parser.add_argument(
        "--preset",
        default=None,
        help="Pattern preset (default, chinese, strict, loose)"
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum directory depth to walk"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed debug information"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediacatalog",
        description="Build a movie/TV catalog from directory trees"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Walk, classify, enrich and write the catalog")
    _add_source_arguments(scan)
    scan.add_argument(
        "--no-tmdb",
        action="store_true",
        help="Skip TMDB lookups and write placeholder metadata"
    )
    scan.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Catalog file to write (default: catalog.json)"
    )
    scan.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Directory for cache file (default: current directory)"
    )
    scan.set_defaults(func=cmd_scan)

    analyze = subparsers.add_parser("analyze", help="Report how each root is organised")
    _add_source_arguments(analyze)
    analyze.set_defaults(func=cmd_analyze)

    presets = subparsers.add_parser("presets", help="List the available pattern presets")
    presets.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)
    presets.set_defaults(func=cmd_presets)

    return parser


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parsed = build_parser().parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return parsed.func(parsed)
    except (ConfigError, TMDBError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
