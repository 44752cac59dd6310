"""
Command line for building and using codebooks.

How to run:
  autolang freqs --from corpus.txt --to from.csv
  autolang build from.csv to.csv mapping.json --seed 7
  echo "the cat sat" | autolang translate mapping.json
  echo "B A A" | autolang translate mapping.json --reverse
  autolang codes mapping.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional, TextIO, Union

import codebook as cb
import huffman as huff
import symbols as sym
import transliterate as tl
from errors import AutolangError

logger = logging.getLogger(__name__)


def decoded_lines(stream: Iterable[Union[bytes, str]]) -> Iterator[str]:
    """Yield lines as text, skipping any line that is not valid UTF-8."""
    for line_no, line in enumerate(stream, start=1):
        if isinstance(line, str):
            yield line
            continue
        try:
            yield line.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("skipping input line %d: not valid UTF-8", line_no)


def _binary(stream: IO) -> IO:
    return getattr(stream, "buffer", stream)


def cmd_freqs(args: argparse.Namespace) -> int:
    word_filter = sym.WordFilter(
        allow_non_ascii=args.allow_non_ascii,
        allow_capitals=args.allow_capitals,
        allow_punctuation=args.allow_punctuation,
        dictionary=sym.load_dictionary(args.dictionary) if args.dictionary else None,
    )
    if args.from_path:
        with open(args.from_path, "rb") as f:
            symbols = sym.count_frequencies(decoded_lines(f), word_filter)
    else:
        symbols = sym.count_frequencies(decoded_lines(_binary(sys.stdin)), word_filter)

    if args.to_path:
        sym.write_source_symbols(args.to_path, symbols)
    else:
        sym.write_source_symbols(sys.stdout, symbols)
    logger.info("counted %d distinct words", len(symbols))
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    source = sym.load_source_symbols(args.from_symbols)
    target = sym.load_target_symbols(args.to_symbols)
    codebook = cb.build_codebook(source, target, seed=args.seed)
    cb.save_codebook(args.output, codebook)
    logger.info("wrote codebook to %s", args.output)
    return 0


def cmd_translate(args: argparse.Namespace, stdin: TextIO, stdout: TextIO) -> int:
    codebook = cb.load_codebook(args.mapping)
    direction = tl.Direction.DECODE if args.reverse else tl.Direction.ENCODE
    for line in decoded_lines(_binary(stdin)):
        stdout.write(tl.transliterate_line(codebook, line, direction, strict=args.strict) + "\n")
    return 0


def cmd_codes(args: argparse.Namespace, stdout: TextIO) -> int:
    codebook = cb.load_codebook(args.mapping)
    codes = {token.index: path for token, path in huff.generate_codes(codebook.root).items()}
    for index in sorted(codes, key=lambda i: (len(codes[i]), i)):
        path = codes[index]
        code = " ".join(codebook.target[p].text for p in path)
        s = codebook.source[index]
        stdout.write(f"{s.text}\t{s.frequency}\t{code}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="autolang", description="Frequency-weighted word <-> code transliteration")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("freqs", help="Count word frequencies in a corpus into a source CSV")
    p.add_argument("-f", "--from", dest="from_path", type=str, default=None, help="Corpus text file (default: stdin)")
    p.add_argument("-t", "--to", dest="to_path", type=str, default=None, help="Output CSV (default: stdout)")
    p.add_argument("--allow-non-ascii", action="store_true", help="Keep words with non-ASCII characters")
    p.add_argument("--allow-capitals", action="store_true", help="Keep words with capital letters")
    p.add_argument("--allow-punctuation", action="store_true", help="Keep words with non-alphabetic characters")
    p.add_argument("--dictionary", type=str, default=None, help="Only count words listed in this file")

    p = sub.add_parser("build", help="Build a codebook from source and target symbol CSVs")
    p.add_argument("from_symbols", type=Path)
    p.add_argument("to_symbols", type=Path)
    p.add_argument("output", type=Path)
    p.add_argument("--seed", type=int, default=None, help="Seed for the child shuffle (reproducible builds)")

    p = sub.add_parser("translate", help="Transliterate stdin line by line")
    p.add_argument("mapping", type=Path)
    p.add_argument("-r", "--reverse", action="store_true", help="Decode target codes back to source words")
    p.add_argument("--strict", action="store_true", help="Fail on unresolvable words or partial codes")

    p = sub.add_parser("codes", help="List every source word with its code")
    p.add_argument("mapping", type=Path)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "freqs":
            return cmd_freqs(args)
        if args.command == "build":
            return cmd_build(args)
        if args.command == "translate":
            return cmd_translate(args, sys.stdin, sys.stdout)
        return cmd_codes(args, sys.stdout)
    except (OSError, AutolangError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
