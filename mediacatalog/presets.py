"""Named pattern presets consumed by the parser and the classifier.

A preset only decides which patterns are consulted and in which order.
Selecting one never changes control flow.
"""
from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any

# Chinese numerals accepted by the localized preset, e.g. 第二季.
CN_NUM = r'[0-9一二三四五六七八九十两]'

COMMON_VIDEO_EXTENSIONS = (
    '.mp4', '.mkv', '.avi', '.mov', '.wmv', '.flv', '.webm', '.m4v',
    '.ts', '.m2ts',
)


def _compile(patterns: list[str], flags: int = re.IGNORECASE) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, flags) for p in patterns)


@dataclass(frozen=True)
class PatternSet:
    """An ordered set of rules for one naming convention."""
    name: str
    description: str
    video_extensions: tuple[str, ...]
    # Movie folder patterns: group 1 is the title, optional group 2 the year.
    movie_folder_patterns: tuple[re.Pattern, ...]
    # Names matching these carry episode markers and are not movie folders.
    movie_exclude_patterns: tuple[re.Pattern, ...]
    # Two groups each: season, episode.
    season_episode_patterns: tuple[re.Pattern, ...]
    # One group: episode.
    episode_patterns: tuple[re.Pattern, ...]
    # One group: season. Matched against a bare directory name.
    season_folder_patterns: tuple[re.Pattern, ...]
    # Role name -> pattern, checked after the season folder patterns.
    special_directories: dict[str, re.Pattern] = field(default_factory=dict)

    def is_video_extension(self, extension: str) -> bool:
        return extension.lower() in self.video_extensions


SPECIAL_DIRECTORIES = {
    "movies": re.compile(r'^(Movies?|Films?|电影|影片)$', re.IGNORECASE),
    "tvShows": re.compile(r'^(TV|TV Shows?|Television|Series|电视剧|剧集)$', re.IGNORECASE),
    "documentaries": re.compile(r'^(Documentar(y|ies)|纪录片)$', re.IGNORECASE),
    "anime": re.compile(r'^(Anime|动漫|动画)$', re.IGNORECASE),
}

# Shared building blocks. Each preset picks and orders a subset.
_SXXEXX = r'S(\d{1,2})[\s._-]?E(\d{1,3})(?!\d)'
_CN_SEASON_EPISODE = r'第(\d{1,2})季[\s._-]*第(\d{1,3})集'
_SEASON_EPISODE_WORDS = r'Season[\s._-]*(\d{1,2})[\s._-]*Episode[\s._-]*(\d{1,3})'
_NXN = r'(?<![\dA-Za-z])(\d{1,2})x(\d{1,3})(?!\d)'
_BRACKETED = r'\[(\d{1,2})\]\s*\[(\d{1,3})\]'

_EP = r'(?<![A-Za-z0-9])EP?[\s._-]?(\d{1,3})(?!\d)'
_CN_EPISODE = r'第(\d{1,3})集'
_EPISODE_WORD = r'Episode[\s._-]*(\d{1,3})(?!\d)'

_MOVIE_TITLE_PAREN_YEAR = r'^(.+?)[\s._-]*[(（\[]((?:19|20)\d{2})[)）\]]'
_MOVIE_TITLE_YEAR = r'^(.+?)[\s._-]+((?:19|20)\d{2})(?!\d)'


DEFAULT = PatternSet(
    name="default",
    description="General purpose rules suitable for most libraries",
    video_extensions=COMMON_VIDEO_EXTENSIONS,
    movie_folder_patterns=_compile([
        _MOVIE_TITLE_PAREN_YEAR,
        _MOVIE_TITLE_YEAR,
    ]),
    movie_exclude_patterns=_compile([
        r'S\d{1,2}[\s._-]?E\d{1,3}',
        r'第.*[季集]',
        r'Season[\s._-]*\d',
    ]),
    season_episode_patterns=_compile([
        _SXXEXX,
        _CN_SEASON_EPISODE,
        _SEASON_EPISODE_WORDS,
        _NXN,
        _BRACKETED,
    ]),
    episode_patterns=_compile([
        _EP,
        _CN_EPISODE,
        _EPISODE_WORD,
    ]),
    season_folder_patterns=_compile([
        r'^S(\d{1,2})$',
        r'^Season[\s._-]*(\d{1,2})$',
        r'^第(\d{1,2})季$',
        r'^S(\d{1,2})[\s._-]',
    ]),
    special_directories=SPECIAL_DIRECTORIES,
)

CHINESE = PatternSet(
    name="chinese",
    description="Tuned for Chinese naming habits, Chinese markers first",
    video_extensions=COMMON_VIDEO_EXTENSIONS + ('.rmvb',),
    movie_folder_patterns=_compile([
        _MOVIE_TITLE_PAREN_YEAR,
        _MOVIE_TITLE_YEAR,
    ]),
    movie_exclude_patterns=_compile([
        r'第.*季',
        r'第.*集',
        r'S\d{1,2}[\s._-]?E\d{1,3}',
        r'Season[\s._-]*\d',
    ]),
    season_episode_patterns=_compile([
        rf'第({CN_NUM}{{1,3}})季[\s._-]*第({CN_NUM}{{1,4}})集',
        _SXXEXX,
        _SEASON_EPISODE_WORDS,
        _NXN,
        _BRACKETED,
    ]),
    episode_patterns=_compile([
        rf'第({CN_NUM}{{1,4}})[集话話]',
        _EP,
        _EPISODE_WORD,
    ]),
    season_folder_patterns=_compile([
        rf'^第({CN_NUM}{{1,3}})季$',
        r'^Season[\s._-]*(\d{1,2})$',
        r'^S(\d{1,2})$',
        r'^S(\d{1,2})[\s._-]',
        rf'^第({CN_NUM}{{1,3}})季[\s._-]',
    ]),
    special_directories=SPECIAL_DIRECTORIES,
)

STRICT = PatternSet(
    name="strict",
    description="Anchored rules that trade recall for fewer misclassifications",
    video_extensions=('.mp4', '.mkv', '.avi', '.mov', '.wmv', '.flv', '.webm', '.m4v'),
    movie_folder_patterns=_compile([
        r'^(.+?)[\s._-]*\(((?:19|20)\d{2})\)$',
        r'^(.+?)[\s._-]+((?:19|20)\d{2})$',
    ]),
    movie_exclude_patterns=_compile([
        r'S\d{1,2}E\d{1,3}',
        r'第.*季|Season',
        r'(?<![A-Za-z])EP?\d+|第.*集',
        r'\d+x\d+',
    ]),
    season_episode_patterns=_compile([
        r'S(\d{1,2})E(\d{1,3})(?!\d)',
        _CN_SEASON_EPISODE,
    ]),
    episode_patterns=_compile([
        r'(?<![A-Za-z0-9])EP?(\d{1,3})(?!\d)',
        _CN_EPISODE,
    ]),
    season_folder_patterns=_compile([
        r'^Season[\s._-]*(\d{1,2})$',
        r'^第(\d{1,2})季$',
        r'^S(\d{1,2})$',
    ]),
    special_directories=SPECIAL_DIRECTORIES,
)

LOOSE = PatternSet(
    name="loose",
    description="Permissive rules that recognise as much content as possible",
    video_extensions=COMMON_VIDEO_EXTENSIONS + ('.rmvb', '.3gp', '.f4v', '.mpg', '.mpeg'),
    movie_folder_patterns=_compile([
        _MOVIE_TITLE_PAREN_YEAR,
        _MOVIE_TITLE_YEAR,
        r'^(.+)$',
    ]),
    movie_exclude_patterns=_compile([
        r'S\d{1,2}[\s._-]?E\d{1,3}',
        r'第.*季.*第.*集',
    ]),
    season_episode_patterns=_compile([
        _SXXEXX,
        _SEASON_EPISODE_WORDS,
        r'Season[\s._-]*(\d{1,2}).*?EP?[\s._-]?(\d{1,3})(?!\d)',
        _CN_SEASON_EPISODE,
        _NXN,
        _BRACKETED,
    ]),
    episode_patterns=_compile([
        _EP,
        _CN_EPISODE,
        _EPISODE_WORD,
        # A bare number right before the extension, e.g. "Show 05.mkv".
        r'(?:^|[\s._-])(\d{1,3})(?=\.[A-Za-z0-9]{2,4}$)',
    ]),
    season_folder_patterns=_compile([
        r'Season[\s._-]*(\d{1,2})',
        r'第(\d{1,2})季',
        r'^S(\d{1,2})\b',
    ]),
    special_directories=SPECIAL_DIRECTORIES,
)

BUILTIN_PRESETS = (DEFAULT, CHINESE, STRICT, LOOSE)

_PATTERN_FIELDS = (
    "movie_folder_patterns",
    "movie_exclude_patterns",
    "season_episode_patterns",
    "episode_patterns",
    "season_folder_patterns",
)

_CJK = re.compile(r'[一-鿿]')


class PresetRegistry:
    """Lookup table of pattern presets owned by the caller.

    Usage::

        presets = PresetRegistry()
        config = presets.get("strict")
        presets.add("mine", base="loose", video_extensions=(".mkv",))
    """

    def __init__(self, presets: tuple[PatternSet, ...] = BUILTIN_PRESETS):
        self._presets: dict[str, PatternSet] = {p.name: p for p in presets}

    def get(self, name: str | None) -> PatternSet:
        """Return the preset called *name*, or ``default`` if unknown."""
        return self._presets.get(name or "", self._presets["default"])

    def names(self) -> list[str]:
        return list(self._presets)

    def __contains__(self, name: object) -> bool:
        return name in self._presets

    def derive(self, base: str, name: str | None = None, **overrides: Any) -> PatternSet:
        """Build a new preset from *base* with some fields replaced.

        Pattern fields may be given as strings; they are compiled with
        ``re.IGNORECASE``.
        """
        base_set = self.get(base)
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key in _PATTERN_FIELDS:
                value = tuple(
                    v if isinstance(v, re.Pattern) else re.compile(v, re.IGNORECASE)
                    for v in value
                )
            elif key == "video_extensions":
                value = tuple(ext.lower() for ext in value)
            changes[key] = value
        changes["name"] = name or base_set.name
        changes.setdefault("description", f"Custom preset based on {base_set.name}")
        return dataclasses.replace(base_set, **changes)

    def add(self, name: str, base: str = "default", **overrides: Any) -> PatternSet:
        """Register a custom preset and return it."""
        preset = self.derive(base, name=name, **overrides)
        self._presets[name] = preset
        return preset

    def recommend(self, analysis) -> str:
        """Suggest a preset name for a walked tree."""
        if analysis is None:
            return "default"
        names = [path.rsplit("/", 1)[-1] for path in analysis.records]
        for record in analysis.records.values():
            names.extend(f.name for f in record.video_files)
        if any(_CJK.search(n) for n in names):
            return "chinese"
        if analysis.structure == "mixed" or analysis.statistics.max_depth > 3:
            return "loose"
        return "default"
