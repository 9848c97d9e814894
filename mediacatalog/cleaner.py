"""Aggressive name cleaning for TMDB search queries.

Provides heavier cleaning than ``parser.extract_title()``, specifically
optimised for building search strings from noisy release names, for
both Latin and Chinese libraries.

The *parser* module handles structural extraction (season/episode
parsing, title extraction for grouping).  This module focuses solely on
producing the best possible search strings for the TMDB API.
"""

import re

# ---------------------------------------------------------------------------
# Pattern groups
# ---------------------------------------------------------------------------

# Resolution / quality
_RESOLUTION = r'\b(720p|1080p|1080i|2160p|4320p|480p|4[kK]|UHD|SD|HD|FHD|QHD)\b'

# Video codec
_CODEC = (
    r'\b(x\.?264|x\.?265|[hH]\.?264|[hH]\.?265|HEVC|AVC|XVID|DIVX|AV1|VP9'
    r'|10[- ]?bit|8[- ]?bit)\b'
)

# Audio codec / channels
_AUDIO = (
    r'\b(AAC|AC3|EAC3|DTS(?:-?HD)?|TrueHD|Atmos|FLAC|MP3'
    r'|DD[P+]?5\.?1|2\.0|5\.1|7\.1)(?:ch)?\b'
)

# Source / rip type
_SOURCE = (
    r'\b(WEB[- ]?DL|WEBRip|WEB|Blu[- ]?[Rr]ay|BDRip|BRRip|REMUX'
    r'|HDTV|HDRip|DVDRip|DVD|TVRip|HDR10\+?|HDR|DV)\b'
)

# Language / subtitle / release tags
_TAGS = (
    r'\b(Chinese|Japanese|English|MULTi|SUB(?:BED|S)?|DUB(?:BED)?'
    r'|REPACK|PROPER|EXTENDED|UNRATED|UNCUT|COMPLETE|LIMITED|CLEAN|NEW|V\d)\b'
)

# Fansub and scene groups common in both libraries
_GROUPS = (
    r'\b(YIFY|YTS|RARBG|ETRG|SPARKS|FGT|TearsHD|OurTV|VINEnc|Nekomoe'
    r'|kissaten|Haruhana|Sakurato|Comicat)\b'
)

# Chinese release labels: 国语中字, 中英双字, 全集, 1-10集, 第1季 ...
_CJK_TAGS = (
    r'[国粤中英日韩]语|[中英日韩简繁]+[双单]?字幕?|内嵌|简体|繁体'
    r'|S\d{1,2}-S\d{1,2}季全集|季全集|全集|合集|完结'
    r'|第[0-9一二三四五六七八九十两]+[季集话話部]|\d+-\d+集'
)

# Season / episode markers
_EPISODE_MARKERS = r'\b(S\d{1,2}(?:E\d{1,3})?|E\d{1,3}|Season\s*\d{1,2}|Episode\s*\d{1,3})\b'

# Website watermarks
_WEBSITE = r'(?:www\.)\S+\.\S+|\bYTS\.(?:MX|AM|AG|LT)\b|\bEZTV\b'

# Bracketed content  [anything] / 【anything】
_BRACKETS = r'\[[^\]]*\]|【[^】]*】'

# Parenthesised noise (parens containing known-tag keywords)
_PAREN_NOISE = r'\([^)]*(?:rip|sub|720|1080|2160|x264|x265|hevc|bluray|web)[^)]*\)'

# Year inside optional parens/brackets
_YEAR = r'[\(\[（]?((?:19|20)\d{2})[\)\]）]?'

_ALL_NOISE = [
    _PAREN_NOISE,
    _RESOLUTION,
    _CODEC,
    _AUDIO,
    _SOURCE,
    _TAGS,
    _GROUPS,
    _EPISODE_MARKERS,
]

# Names that are never worth a search on their own.
MEANINGLESS_TITLES = frozenset({
    '电影', '动漫', '视频', '下载', '完成', '合集', '全集', '影片', '电视剧',
    'movie', 'movies', 'tv', 'series', 'season', 'episode', 'video', 'film',
    'new folder', 'unknown series',
})

_CJK_RUN = re.compile(r'[一-鿿][一-鿿0-9：:·\s]*')
_LATIN = re.compile(r'[A-Za-z]{2,}')


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def clean_for_search(
    raw_name: str,
    *,
    is_series: bool = False,
) -> tuple[str, int | None]:
    """Aggressively clean a raw name for TMDB search.

    Parameters
    ----------
    raw_name:
        A folder name or filename stem (no extension).
    is_series:
        When *True*, skip the movie-specific "truncate at year" heuristic
        so that years embedded in series titles are not lost.

    Returns
    -------
    (cleaned_title, year)
        *year* is ``None`` when no plausible release year was found.
    """
    name = raw_name

    # 1. Strip bracketed content and watermarks while dots are intact.
    name = re.sub(_BRACKETS, ' ', name)
    name = re.sub(_WEBSITE, ' ', name, flags=re.IGNORECASE)

    # 2. Normalise separators.
    name = re.sub(r'[._]', ' ', name)
    name = re.sub(r'--+', ' ', name)

    # 3. Extract year (last occurrence).
    year: int | None = None
    matches = list(re.finditer(_YEAR, name))
    if matches:
        m = matches[-1]
        if not is_series and m.start() > 0:
            # Everything after a movie's year is release noise.
            stripped = name[:m.start()]
        else:
            stripped = name[:m.start()] + ' ' + name[m.end():]
        # A title that is only a number ("1917") keeps it.
        if stripped.strip():
            name = stripped
            year = int(m.group(1))

    # 4. Apply all noise patterns.
    name = re.sub(_CJK_TAGS, ' ', name)
    for pattern in _ALL_NOISE:
        name = re.sub(pattern, ' ', name, flags=re.IGNORECASE)

    # 5. Remove empty parens left behind.
    name = re.sub(r'[(（]\s*[)）]', '', name)

    # 6. Keep word chars, spaces, apostrophes, hyphens, colons, ampersands.
    name = re.sub(r"[^\w\s'\-:&：·]", ' ', name)
    name = re.sub(r'\s+', ' ', name).strip()
    name = re.sub(r'^[\s\-]+|[\s\-]+$', '', name)

    return name, year


def is_meaningful(title: str) -> bool:
    """False for generic words and bare season/episode markers."""
    trimmed = title.strip().lower()
    if len(trimmed) < 2:
        return False
    if trimmed in MEANINGLESS_TITLES:
        return False
    if re.fullmatch(r'(s\d{1,2}|e\d{1,3}|第\d+[季集])', trimmed):
        return False
    return True


def title_candidates(
    *names: str | None,
    is_series: bool = False,
) -> list[tuple[str, int | None]]:
    """Search strings worth trying for the given names, best first.

    Mixed-script names ("流浪地球 The Wandering Earth") also yield their
    Chinese part on its own.
    """
    seen: set[str] = set()
    candidates: list[tuple[str, int | None]] = []

    def add(title: str, year: int | None) -> None:
        key = title.casefold()
        if key in seen or not is_meaningful(title):
            return
        seen.add(key)
        candidates.append((title, year))

    for name in names:
        if not name:
            continue
        cleaned, year = clean_for_search(name, is_series=is_series)
        add(cleaned, year)
        if _LATIN.search(cleaned):
            cjk = _CJK_RUN.search(cleaned)
            if cjk:
                add(cjk.group(0).strip(), year)

    return candidates
