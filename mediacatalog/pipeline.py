"""End-to-end orchestration: walk every root, merge, enrich, group."""
from __future__ import annotations

import logging
from typing import Iterable

from .aggregator import aggregate_versions, merge_season_fragments, reclassify_single_episodes
from .catalog import CatalogItem
from .config import RootConfig
from .enrichment import Lookup, build_placeholders, enrich
from .models import Candidate, TreeAnalysis
from .presets import PresetRegistry
from .walker import DEFAULT_CONCURRENCY, DEFAULT_MAX_DEPTH, ListDirectory, walk

log = logging.getLogger(__name__)


async def analyze_roots(
    list_directory: ListDirectory,
    roots: Iterable[RootConfig],
    presets: PresetRegistry,
    default_preset: str = "default",
    max_depth: int = DEFAULT_MAX_DEPTH,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[TreeAnalysis]:
    """
    Walk each root with its own preset (or the default one).

    A root with a forced title stamps it on every candidate found there.
    """
    analyses = []
    for root in roots:
        config = presets.get(root.preset or default_preset)
        analysis = await walk(list_directory, root.path, config, max_depth, concurrency)
        if root.title:
            log.info("Forcing title %r on %d candidates under %s",
                     root.title, len(analysis.candidates), root.path)
            for candidate in analysis.candidates:
                candidate.title = root.title
        analyses.append(analysis)
    return analyses


async def build_catalog(
    list_directory: ListDirectory,
    roots: Iterable[RootConfig],
    presets: PresetRegistry,
    lookup: Lookup | None = None,
    default_preset: str = "default",
    max_depth: int = DEFAULT_MAX_DEPTH,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[CatalogItem]:
    """
    Produce the catalog items for all roots.

    Args:
        list_directory: Listing coroutine shared by all roots
        roots: Trees to walk, in order
        presets: Registry the preset names are resolved against
        lookup: Enrichment coroutine; None builds placeholders only
        default_preset: Preset for roots that name none
        max_depth: Depth bound for each walk
        concurrency: Listings in flight per walk

    Returns:
        Entries and version groups in discovery order
    """
    analyses = await analyze_roots(
        list_directory, roots, presets, default_preset, max_depth, concurrency,
    )
    candidates: list[Candidate] = [c for a in analyses for c in a.candidates]
    log.info("Collected %d candidates from %d roots", len(candidates), len(analyses))

    config = presets.get(default_preset)
    merged = merge_season_fragments(candidates, config)
    merged = reclassify_single_episodes(merged, config)

    if lookup is None:
        entries = build_placeholders(merged)
    else:
        entries = await enrich(merged, lookup)

    return aggregate_versions(entries)
