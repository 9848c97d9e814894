"""Parser module for extracting media information from file and folder names."""
import logging
import os
import re

from .models import FileMetadata
from .presets import DEFAULT, PatternSet

log = logging.getLogger(__name__)

# Larger numbers are almost always resolutions, bitrates or aspect ratios.
MAX_SEASON = 50
MAX_EPISODE = 200

QUALITY_PATTERN = re.compile(
    r'(?<![A-Za-z0-9])(4K|2160p|1080p|1080i|720p|480p|UHD|HD)(?![A-Za-z0-9])',
    re.IGNORECASE,
)
YEAR_PATTERN = re.compile(r'(?<!\d)((?:19|20)\d{2})(?!\d)')
EXTENSION_PATTERN = re.compile(r'\.([A-Za-z0-9]{1,5})$')

_CN = r'[0-9一二三四五六七八九十两]'

# Removed from titles, in this order. Each match is replaced by a space so
# that removing one token never glues its neighbours into a new one.
TITLE_NOISE_PATTERNS = [
    # Bracketed or parenthesised year
    r'[(（\[【]\s*(?:19|20)\d{2}\s*[)）\]】]',
    # Resolution
    r'(?<!\d)\d{3,4}[pP](?![A-Za-z])',
    # Codec
    r'(?<![A-Za-z0-9])[xXhH]\.?26[45](?![A-Za-z0-9])',
    # Audio
    r'(?<![A-Za-z])(?:AAC|AC3|DTS|TrueHD)(?![A-Za-z])',
    # Source
    r'(?<![A-Za-z])(?:Blu-?Ray|WEB-DL|HDTV|DVDRip)(?![A-Za-z])',
    # Season and episode markers
    r'(?<![A-Za-z0-9])S\d{1,2}[\s._-]*E\d{1,3}(?:[\s._-]*E\d{1,3})*(?!\d)',
    rf'第{_CN}{{1,3}}季[\s._-]*第{_CN}{{1,4}}[集话話]',
    rf'第{_CN}{{1,4}}[季集话話]',
    r'Season[\s._-]*\d{1,2}(?:[\s._-]*Episode[\s._-]*\d{1,3})?(?!\d)',
    r'Episode[\s._-]*\d{1,3}(?!\d)',
    r'(?<![A-Za-z0-9])EP?\d{1,3}(?![A-Za-z0-9])',
    r'(?<![A-Za-z0-9])\d{1,2}x\d{1,3}(?![A-Za-z0-9])',
    r'\[\d{1,2}\]\s*\[\d{1,3}\]',
]
_TITLE_NOISE = [re.compile(p, re.IGNORECASE) for p in TITLE_NOISE_PATTERNS]
_EMPTY_BRACKETS = re.compile(r'\(\s*\)|\[\s*\]|（\s*）|【\s*】')

_CN_DIGITS = {
    '零': 0, '一': 1, '二': 2, '两': 2, '三': 3, '四': 4,
    '五': 5, '六': 6, '七': 7, '八': 8, '九': 9,
}


def parse_number(text: str) -> int | None:
    """Convert ASCII digits or a small Chinese numeral (up to 99) to int."""
    text = text.strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)
    if '十' in text:
        tens, _, ones = text.partition('十')
        if tens and tens not in _CN_DIGITS:
            return None
        if ones and ones not in _CN_DIGITS:
            return None
        return _CN_DIGITS.get(tens, 1) * 10 + _CN_DIGITS.get(ones, 0)
    if len(text) == 1 and text in _CN_DIGITS:
        return _CN_DIGITS[text]
    return None


def split_extension(name: str) -> tuple[str, str | None]:
    """Split ``name`` into stem and upper-case extension."""
    match = EXTENSION_PATTERN.search(name)
    if not match:
        return name, None
    return name[:match.start()], match.group(1).upper()


def is_video_file(name: str, config: PatternSet = DEFAULT) -> bool:
    """Check if a file name has one of the preset's video extensions."""
    return config.is_video_extension(os.path.splitext(name)[1])


def extract_season_episode(
    name: str,
    config: PatternSet = DEFAULT,
) -> tuple[int | None, int | None]:
    """
    Extract season and episode numbers from a name.

    Combined season+episode patterns are tried first, in preset order, then
    episode-only patterns. A match outside the sane numeric range is
    rejected and the next pattern is tried.

    Returns:
        (season, episode); either may be None.
    """
    for pattern in config.season_episode_patterns:
        for match in pattern.finditer(name):
            season = parse_number(match.group(1))
            episode = parse_number(match.group(2))
            if season is None or episode is None:
                continue
            if season > MAX_SEASON or episode > MAX_EPISODE:
                log.debug(
                    "Rejected S%sE%s in %r (out of range)", season, episode, name,
                )
                continue
            return season, episode

    for pattern in config.episode_patterns:
        for match in pattern.finditer(name):
            episode = parse_number(match.group(1))
            if episode is None:
                continue
            if episode > MAX_EPISODE:
                log.debug("Rejected E%s in %r (out of range)", episode, name)
                continue
            return None, episode

    return None, None


def extract_year(name: str) -> int | None:
    """Return the last plausible release year in the name."""
    matches = YEAR_PATTERN.findall(name)
    if matches:
        return int(matches[-1])
    return None


def extract_quality(name: str) -> str | None:
    match = QUALITY_PATTERN.search(name)
    return match.group(1) if match else None


def extract_title(name: str, strip_extension: bool = True) -> str:
    """
    Clean a file or folder name down to a human title.

    Never fails: when everything is noise the trimmed original name is
    returned. Applying it to its own output changes nothing.
    """
    title = name
    if strip_extension:
        title = EXTENSION_PATTERN.sub('', title)

    for pattern in _TITLE_NOISE:
        title = pattern.sub(' ', title)

    title = re.sub(r'[._\-]+', ' ', title)
    # Nested brackets empty out one layer at a time.
    previous = None
    while title != previous:
        previous = title
        title = _EMPTY_BRACKETS.sub(' ', title)
    title = re.sub(r'\s+', ' ', title).strip()

    return title or name.strip()


def match_season_folder(name: str, config: PatternSet = DEFAULT) -> int | None:
    """Return the season number if ``name`` is a season folder, else None."""
    name = name.strip()
    for pattern in config.season_folder_patterns:
        match = pattern.search(name)
        if not match:
            continue
        season = parse_number(match.group(1))
        if season is not None and season <= MAX_SEASON:
            return season
    return None


def has_episode_markers(name: str, config: PatternSet = DEFAULT) -> bool:
    """True if the name matches one of the preset's movie-exclusion patterns."""
    return any(p.search(name) for p in config.movie_exclude_patterns)


def split_title_year(
    name: str,
    config: PatternSet = DEFAULT,
    strip_extension: bool = False,
) -> tuple[str, int | None]:
    """
    Split a movie folder or file name into title and year.

    Uses the preset's movie-folder patterns; falls back to plain title
    extraction when none of them matches.
    """
    stem = split_extension(name)[0] if strip_extension else name
    for pattern in config.movie_folder_patterns:
        match = pattern.match(stem.strip())
        if not match:
            continue
        title = extract_title(match.group(1), strip_extension=False)
        year = None
        if pattern.groups >= 2 and match.group(2):
            year = int(match.group(2))
        if title:
            return title, year
    return extract_title(stem, strip_extension=False), extract_year(stem)


def parse_name(
    name: str,
    config: PatternSet = DEFAULT,
    is_directory: bool = False,
) -> FileMetadata:
    """
    Parse a file or folder name and extract metadata.

    Args:
        name: Base name, no directory components
        config: Pattern preset to consult
        is_directory: Folder names have no extension to strip

    Returns:
        FileMetadata with extracted information
    """
    if is_directory:
        stem, extension = name, None
    else:
        stem, extension = split_extension(name)

    season, episode = extract_season_episode(stem, config)

    if season is not None or episode is not None:
        media_type = "episode"
    elif stem.strip():
        media_type = "movie"
    else:
        media_type = "unknown"

    return FileMetadata(
        raw_name=name,
        type=media_type,
        title=extract_title(name, strip_extension=not is_directory),
        season=season,
        episode=episode,
        year=extract_year(stem),
        quality=extract_quality(stem),
        extension=extension,
    )
