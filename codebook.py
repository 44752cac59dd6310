"""
Codebook: the two symbol tables plus the n-ary prefix tree built over the
source alphabet. Built once, then persisted as JSON and used read-only.
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import huffman as huff
from errors import CodebookError, CodebookFormatError
from symbols import SourceSymbol, TargetSymbol

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class Codebook:
    def __init__(self, source: Sequence[SourceSymbol], target: Sequence[TargetSymbol],
                 roots: Optional[List[huff.Node]] = None, built: bool = False):
        self.source = list(source)
        self.target = list(target)
        self.roots = roots if roots is not None else [huff.Leaf(huff.SourceRef(i)) for i in range(len(self.source))]
        self.built = built
        self._source_index: Optional[Dict[str, int]] = None
        self._target_index: Optional[Dict[str, int]] = None

    @classmethod
    def from_tables(cls, source: Sequence[SourceSymbol], target: Sequence[TargetSymbol]) -> "Codebook":
        return cls(source, target)

    def __repr__(self):
        return f"Codebook(source={len(self.source)}, target={len(self.target)}, roots={len(self.roots)})"

    def frequency_of(self, token: huff.Token) -> int:
        if isinstance(token, huff.SourceRef):
            return self.source[token.index].frequency
        return 0

    @property
    def root(self) -> Optional[huff.Node]:
        return self.roots[0] if self.roots else None

    # text -> index lookups, first occurrence wins like a linear scan would

    def source_index(self, text: str) -> Optional[int]:
        if self._source_index is None:
            self._source_index = {}
            for i, s in enumerate(self.source):
                self._source_index.setdefault(s.text, i)
        return self._source_index.get(text)

    def target_index(self, text: str) -> Optional[int]:
        if self._target_index is None:
            self._target_index = {}
            for i, t in enumerate(self.target):
                self._target_index.setdefault(t.text, i)
        return self._target_index.get(text)

    def path_for(self, index: int) -> Optional[List[int]]:
        if self.root is None:
            return None
        return huff.find_path(self.root, huff.SourceRef(index))

    def code_lengths(self) -> Dict[int, int]:
        """Source index -> number of target tokens in its code."""
        return {token.index: len(path) for token, path in huff.generate_codes(self.root).items()}


def build(codebook: Codebook, rng: Optional[random.Random] = None) -> Codebook:
    """Collapse the seeded forest into a single tree. Pass rng for reproducible builds."""
    if codebook.built:
        raise CodebookError("codebook is already built")
    huff.build_tree(codebook.roots, len(codebook.target), codebook.frequency_of, rng=rng)
    codebook.built = True
    logger.info("built codebook: %d source symbols, %d target symbols, depth %d",
                len(codebook.source), len(codebook.target), huff.tree_depth(codebook.root))
    return codebook


def build_codebook(source: Sequence[SourceSymbol], target: Sequence[TargetSymbol],
                   seed: Optional[int] = None) -> Codebook:
    rng = random.Random(seed) if seed is not None else None
    return build(Codebook.from_tables(source, target), rng=rng)


# Persistence

def _node_to_dict(node: huff.Node) -> dict:
    if isinstance(node, huff.Leaf):
        return {"leaf": {"from": node.token.index}}
    return {"branches": [_node_to_dict(child) for child in node.children]}


def _node_from_dict(data, codebook: Codebook, seen: set) -> huff.Node:
    if not isinstance(data, dict):
        raise CodebookFormatError(f"tree node must be an object, got {type(data).__name__}")
    if "leaf" in data:
        leaf = data["leaf"]
        index = leaf.get("from") if isinstance(leaf, dict) else None
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(codebook.source):
            raise CodebookFormatError(f"leaf does not reference a source symbol: {leaf!r}")
        if index in seen:
            raise CodebookFormatError(f"source symbol {index} appears in more than one leaf")
        seen.add(index)
        return huff.Leaf(huff.SourceRef(index), codebook.source[index].frequency)
    if "branches" in data:
        children = data["branches"]
        if not isinstance(children, list) or not 1 <= len(children) <= len(codebook.target):
            raise CodebookFormatError(f"branch must have 1 to {len(codebook.target)} children")
        return huff.Branch([_node_from_dict(child, codebook, seen) for child in children])
    raise CodebookFormatError(f"unknown tree node: {sorted(data)}")


def to_dict(codebook: Codebook) -> dict:
    return {
        "format": FORMAT_VERSION,
        "tree": [_node_to_dict(node) for node in codebook.roots],
        "from": [{"text": s.text, "frequency": s.frequency} for s in codebook.source],
        "to": [{"text": t.text} for t in codebook.target],
    }


def _frequency(value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise CodebookFormatError(f"frequency must be a non-negative integer, got {value!r}")
    return value


def from_dict(data: dict) -> Codebook:
    """Rebuild a codebook exactly as saved. Nothing is re-sorted or re-shuffled."""
    try:
        source = [SourceSymbol(str(s["text"]), _frequency(s["frequency"])) for s in data["from"]]
        target = [TargetSymbol(str(t["text"])) for t in data["to"]]
        raw_tree = data["tree"]
    except (KeyError, TypeError, ValueError) as e:
        raise CodebookFormatError(f"malformed codebook document: {e}") from e

    version = data.get("format", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise CodebookFormatError(f"unsupported codebook format {version!r}")
    if not isinstance(raw_tree, list) or len(raw_tree) > 1:
        raise CodebookFormatError("tree must be a list holding at most one root")

    codebook = Codebook(source, target, roots=[], built=True)
    seen: set = set()
    codebook.roots = [_node_from_dict(node, codebook, seen) for node in raw_tree]
    if len(seen) != len(source):
        raise CodebookFormatError(f"tree holds {len(seen)} leaves for {len(source)} source symbols")
    return codebook


def save_codebook(path: Union[str, Path], codebook: Codebook) -> None:
    if not codebook.built:
        raise CodebookError("only a built codebook can be saved")
    p = Path(path)
    p.write_text(json.dumps(to_dict(codebook), ensure_ascii=False, indent=2), encoding="utf-8")


def load_codebook(path: Union[str, Path]) -> Codebook:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CodebookFormatError(f"{p}: not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CodebookFormatError(f"{p}: top level must be an object")
    return from_dict(data)
