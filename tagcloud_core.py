"""Core utilities for counting words and rendering an HTML tag cloud."""
from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, TextIO, Tuple

import numpy as np

logger = logging.getLogger(__name__)

SEPARATORS: FrozenSet[str] = frozenset(
    " ,/.-!?_'\"`*()[]{}\\|<>~^@#$&+=;:"
)

MIN_FONT_SIZE = 11
MAX_FONT_SIZE = 48

DEFAULT_STYLESHEET = (
    "http://cse.osu.edu/software/2231/web-sw2/assignments/projects/"
    "tag-cloud-generator/data/tagcloud.css"
)


class TagCloudError(Exception):
    """Base class for every error raised by the tag cloud pipeline."""


class InvalidWordCountError(TagCloudError, ValueError):
    """Raised when the requested number of words is negative or not an integer."""


class InsufficientVocabularyError(TagCloudError):
    """Raised in strict mode when fewer distinct words exist than were requested."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"requested {requested} words but the input only has {available} distinct words"
        )
        self.requested = requested
        self.available = available


class InputReadError(TagCloudError, OSError):
    pass


class OutputWriteError(TagCloudError, OSError):
    pass


@dataclass
class TagCloudConfig:
    """Configuration for tag cloud generation."""

    min_font_size: int = MIN_FONT_SIZE
    max_font_size: int = MAX_FONT_SIZE
    separators: FrozenSet[str] = SEPARATORS
    strict: bool = False
    stylesheet_url: Optional[str] = DEFAULT_STYLESHEET
    inline_style: bool = True

    def validate(self) -> "TagCloudConfig":
        if self.min_font_size > self.max_font_size:
            raise ValueError(
                f"min_font_size ({self.min_font_size}) exceeds max_font_size ({self.max_font_size})"
            )
        return self


@dataclass(frozen=True)
class WordCounts:
    counts: Dict[str, int]
    total: int

    def __len__(self) -> int:
        return len(self.counts)


@dataclass(frozen=True)
class RankedEntry:
    word: str
    count: int


@dataclass(frozen=True)
class RenderEntry:
    word: str
    count: int
    size: int


@dataclass(frozen=True)
class RankSelection:
    """The top-N entries in descending-count order, with their scaling bounds.

    Iterating yields the entries afresh each time, so a selection can be
    consumed by the scaler and again by a JSON dump.
    """

    entries: Tuple[RankedEntry, ...]
    requested: int
    available: int
    max_count: Optional[int] = None
    min_count: Optional[int] = None

    @property
    def insufficient(self) -> bool:
        return self.requested > self.available

    def __iter__(self) -> Iterator[RankedEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class TagCloudResult:
    html: str
    selection: RankSelection
    entries: List[RenderEntry]
    word_counts: WordCounts = field(repr=False)


def next_word_or_separator(text: str, position: int, separators: FrozenSet[str] = SEPARATORS) -> str:
    """Return the maximal run of words or separators in ``text`` starting at ``position``.

    The run is homogeneous: either every character belongs to ``separators``
    or none does, and the character following it (if any) has the opposite
    membership.
    """
    if not 0 <= position < len(text):
        raise ValueError(f"position {position} out of range for text of length {len(text)}")

    is_separator = text[position] in separators
    end = position + 1
    while end < len(text) and (text[end] in separators) == is_separator:
        end += 1
    return text[position:end]


def iter_tokens(text: str, separators: FrozenSet[str] = SEPARATORS) -> Iterator[str]:
    position = 0
    while position < len(text):
        token = next_word_or_separator(text, position, separators)
        yield token
        position += len(token)


def iter_words(text: str, separators: FrozenSet[str] = SEPARATORS) -> Iterator[str]:
    for token in iter_tokens(text.lower(), separators):
        if token[0] not in separators:
            yield token


def iter_lines(stream: Iterable[str]) -> Iterator[str]:
    """Yield the lines of ``stream`` without terminators, splitting on ``\\n``, ``\\r\\n`` or a bare ``\\r``."""
    for chunk in stream:
        yield from chunk.replace("\r\n", "\n").replace("\r", "\n").rstrip("\n").split("\n")


def count_words(stream: Iterable[str], *, separators: FrozenSet[str] = SEPARATORS) -> WordCounts:
    """Count every word in ``stream``.

    Each line is tokenized on its own, so a line break always ends a word.
    """
    counts: Dict[str, int] = {}
    total = 0
    try:
        for line in iter_lines(stream):
            for word in iter_words(line, separators):
                counts[word] = counts.get(word, 0) + 1
                total += 1
    except (OSError, UnicodeDecodeError) as exc:
        raise InputReadError(f"failed to read input: {exc}") from exc

    logger.debug("Counted %d words (%d distinct)", total, len(counts))
    return WordCounts(counts=counts, total=total)


def rank_key(entry: RankedEntry) -> Tuple[int, str]:
    return (-entry.count, entry.word)


def alphabetical_key(entry: RenderEntry) -> str:
    return entry.word


def select_top(counts: Mapping[str, int] | WordCounts, n: int, *, strict: bool = False) -> RankSelection:
    """Pick the ``n`` most frequent words, breaking count ties by word."""
    if isinstance(counts, WordCounts):
        counts = counts.counts
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidWordCountError(f"number of words must be an integer, got {n!r}")
    if n < 0:
        raise InvalidWordCountError(f"number of words must not be negative, got {n}")

    available = len(counts)
    if n > available:
        if strict:
            raise InsufficientVocabularyError(n, available)
        logger.warning(
            "Requested %d words but only %d distinct words are available", n, available
        )

    ranked = sorted((RankedEntry(word, count) for word, count in counts.items()), key=rank_key)
    selected = tuple(ranked[:n])
    if not selected:
        return RankSelection(entries=selected, requested=n, available=available)

    max_count = selected[0].count
    min_count = selected[-1].count
    logger.debug("Selected %d words with counts in [%d, %d]", len(selected), min_count, max_count)
    return RankSelection(
        entries=selected,
        requested=n,
        available=available,
        max_count=max_count,
        min_count=min_count,
    )


def font_sizes(
    counts: Sequence[int],
    min_count: int,
    max_count: int,
    *,
    min_size: int = MIN_FONT_SIZE,
    max_size: int = MAX_FONT_SIZE,
) -> List[int]:
    """Map counts linearly onto ``[min_size, max_size]`` with truncating integer division.

    When every count is the same there is no spread and each size is ``min_size``.
    """
    values = np.asarray(counts, dtype=np.int64)
    if values.size == 0:
        return []
    if max_count == min_count:
        return [min_size] * int(values.size)

    span = max_size - min_size
    # counts >= min_count, so floor division truncates toward zero.
    sizes = min_size + (span * (values - min_count)) // (max_count - min_count)
    return [int(size) for size in sizes]


def scale_selection(selection: RankSelection, *, config: Optional[TagCloudConfig] = None) -> List[RenderEntry]:
    config = config or TagCloudConfig()
    if not len(selection):
        return []
    entries = list(selection)
    sizes = font_sizes(
        [entry.count for entry in entries],
        selection.min_count,
        selection.max_count,
        min_size=config.min_font_size,
        max_size=config.max_font_size,
    )
    return [RenderEntry(entry.word, entry.count, size) for entry, size in zip(entries, sizes)]


def _inline_style(config: TagCloudConfig) -> str:
    rules = [
        f".f{size} {{ font-size:{size}px; }}"
        for size in range(config.min_font_size, config.max_font_size + 1)
    ]
    return "<style>\n" + "\n".join(rules) + "\n</style>\n"


def render_html(
    entries: Iterable[RenderEntry],
    *,
    n: int,
    source_name: str,
    config: Optional[TagCloudConfig] = None,
) -> str:
    """Render ``entries`` as an HTML tag cloud in alphabetical order."""
    config = config or TagCloudConfig()
    heading = f"Top {n} words in {html.escape(source_name)}"

    parts: List[str] = ["<html>\n", f"<head>\n<title>{heading}</title>\n"]
    if config.stylesheet_url:
        parts.append(
            f'<link href="{html.escape(config.stylesheet_url)}" rel="stylesheet" type="text/css">\n'
        )
    if config.inline_style:
        parts.append(_inline_style(config))
    parts.append("</head>\n")
    parts.append("<body>\n")
    parts.append(f"<h2>{heading}</h2>\n<hr>\n")
    parts.append('<div class="cdiv">\n<p class="cbox">\n')
    for entry in sorted(entries, key=alphabetical_key):
        parts.append(
            f'<span style="cursor:default" class="f{entry.size}" '
            f'title="count: {entry.count}">{html.escape(entry.word)}</span>\n'
        )
    parts.append("</p>\n</div>\n</body>\n</html>\n")
    return "".join(parts)


def write_html(sink: TextIO, document: str) -> None:
    try:
        sink.write(document)
        sink.flush()
    except OSError as exc:
        raise OutputWriteError(f"failed to write output: {exc}") from exc


def generate_tag_cloud(
    stream: Iterable[str],
    n: int,
    *,
    source_name: str,
    config: Optional[TagCloudConfig] = None,
) -> TagCloudResult:
    """Run the full pipeline over ``stream`` and return the rendered cloud."""
    config = (config or TagCloudConfig()).validate()
    word_counts = count_words(stream, separators=config.separators)
    return generate_tag_cloud_from_counts(word_counts, n, source_name=source_name, config=config)


def generate_tag_cloud_from_counts(
    word_counts: WordCounts,
    n: int,
    *,
    source_name: str,
    config: Optional[TagCloudConfig] = None,
) -> TagCloudResult:
    config = (config or TagCloudConfig()).validate()
    selection = select_top(word_counts, n, strict=config.strict)
    entries = scale_selection(selection, config=config)
    document = render_html(entries, n=n, source_name=source_name, config=config)
    return TagCloudResult(html=document, selection=selection, entries=entries, word_counts=word_counts)


def load_word_counts(input_path: Path | str, *, config: Optional[TagCloudConfig] = None) -> WordCounts:
    config = config or TagCloudConfig()
    path = Path(input_path)
    try:
        with path.open("r", encoding="utf-8") as infile:
            return count_words(infile, separators=config.separators)
    except InputReadError:
        raise
    except OSError as exc:
        raise InputReadError(f"failed to open {path}: {exc}") from exc


def generate_tag_cloud_file(
    input_path: Path | str,
    output_path: Path | str,
    n: int,
    *,
    config: Optional[TagCloudConfig] = None,
    source_name: Optional[str] = None,
) -> TagCloudResult:
    config = (config or TagCloudConfig()).validate()
    source = Path(input_path)
    word_counts = load_word_counts(source, config=config)
    result = generate_tag_cloud_from_counts(
        word_counts,
        n,
        source_name=source_name or str(input_path),
        config=config,
    )

    target = Path(output_path)
    try:
        with target.open("w", encoding="utf-8") as outfile:
            write_html(outfile, result.html)
    except OutputWriteError:
        raise
    except OSError as exc:
        raise OutputWriteError(f"failed to write {target}: {exc}") from exc

    logger.info("Wrote tag cloud of %d words to %s", len(result.entries), target)
    return result


def entries_to_json(entries: Sequence[RenderEntry]) -> List[Dict[str, object]]:
    return [
        {"text": entry.word, "count": entry.count, "size": entry.size}
        for entry in sorted(entries, key=alphabetical_key)
    ]


def dump_json(entries: Sequence[RenderEntry], path: Path | str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(entries_to_json(entries), indent=2), encoding="utf-8")
