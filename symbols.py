"""
Symbol tables for the two alphabets, plus the CSV readers/writers and the
corpus word counter that produce them.

Source table CSV:  text,frequency
Target table CSV:  text
Row order defines index assignment.
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, TextIO, Union

logger = logging.getLogger(__name__)

PathOrStream = Union[str, Path, TextIO]

_WORD_RE = re.compile(r"[^ \t\n\r\f]+") # ASCII whitespace only, U+00A0 and friends stay inside words


def split_words(text: str) -> List[str]:
    return _WORD_RE.findall(text)


@dataclass(frozen=True)
class SourceSymbol:
    text: str
    frequency: int

@dataclass(frozen=True)
class TargetSymbol:
    text: str


# Corpus counting

@dataclass
class WordFilter:
    allow_non_ascii: bool = False    # non-ASCII words are usually OCR noise
    allow_capitals: bool = False     # capitalised words are usually names
    allow_punctuation: bool = False
    dictionary: Optional[Set[str]] = None  # if given, only these words count

    def accepts(self, word: str) -> bool:
        if not self.allow_non_ascii and not word.isascii():
            return False
        if not self.allow_capitals and any("A" <= c <= "Z" for c in word):
            return False
        if not self.allow_punctuation and not all(c.isalpha() for c in word):
            return False
        if self.dictionary and word not in self.dictionary:
            return False
        return True


def count_frequencies(lines: Iterable[str], word_filter: Optional[WordFilter] = None) -> List[SourceSymbol]:
    """Whitespace-split every line, keep the words the filter accepts, count them."""
    word_filter = word_filter or WordFilter()
    counts: Dict[str, int] = {}
    for line in lines:
        for word in split_words(line):
            if word_filter.accepts(word):
                counts[word] = counts.get(word, 0) + 1
    return [SourceSymbol(text, counts[text]) for text in sorted(counts)]


def load_dictionary(path: Union[str, Path]) -> Set[str]:
    text = Path(path).read_text(encoding="utf-8")
    return {line.strip() for line in text.splitlines() if line.strip()}


# CSV I/O

def _open_for_read(source: PathOrStream):
    if isinstance(source, (str, Path)):
        return open(source, newline="", encoding="utf-8", errors="surrogateescape")
    return source


def _decodes(row: dict) -> bool:
    """False when a field still carries undecodable bytes (surrogate escapes)."""
    for value in row.values():
        if isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError:
                return False
    return True


def load_source_symbols(source: PathOrStream) -> List[SourceSymbol]:
    """Read text,frequency rows. Malformed rows are logged and skipped."""
    f = _open_for_read(source)
    try:
        symbols: List[SourceSymbol] = []
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            if not _decodes(row):
                logger.warning("skipping source row %d: not valid UTF-8", line_no)
                continue
            text = row.get("text")
            raw_freq = row.get("frequency")
            if not text or raw_freq is None:
                logger.warning("skipping source row %d: missing text or frequency", line_no)
                continue
            try:
                frequency = int(raw_freq)
            except ValueError:
                logger.warning("skipping source row %d: bad frequency %r", line_no, raw_freq)
                continue
            if frequency < 0:
                logger.warning("skipping source row %d: negative frequency %d", line_no, frequency)
                continue
            symbols.append(SourceSymbol(text, frequency))
        return symbols
    finally:
        if f is not source:
            f.close()


def load_target_symbols(source: PathOrStream) -> List[TargetSymbol]:
    f = _open_for_read(source)
    try:
        symbols: List[TargetSymbol] = []
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            if not _decodes(row):
                logger.warning("skipping target row %d: not valid UTF-8", line_no)
                continue
            text = row.get("text")
            if not text:
                logger.warning("skipping target row %d: missing text", line_no)
                continue
            symbols.append(TargetSymbol(text))
        return symbols
    finally:
        if f is not source:
            f.close()


def _write_rows(dest: PathOrStream, fields: List[str], rows: Iterable[dict]) -> None:
    if isinstance(dest, (str, Path)):
        with Path(dest).open("w", newline="", encoding="utf-8") as f:
            _write_rows(f, fields, rows)
        return
    w = csv.DictWriter(dest, fieldnames=fields)
    w.writeheader()
    for row in rows:
        w.writerow(row)


def write_source_symbols(dest: PathOrStream, symbols: Iterable[SourceSymbol]) -> None:
    _write_rows(dest, ["text", "frequency"], ({"text": s.text, "frequency": s.frequency} for s in symbols))


def write_target_symbols(dest: PathOrStream, symbols: Iterable[TargetSymbol]) -> None:
    _write_rows(dest, ["text"], ({"text": s.text} for s in symbols))
