"""
Encode / decode traversal over a built Codebook, and the text <-> token
conversion around it.

    encode: Literal and SourceRef tokens in -> Literal and TargetRef tokens out
    decode: Literal and TargetRef tokens in -> Literal and SourceRef tokens out

Both are lenient by default: a source word with no leaf is dropped from
encode output and a partial code left at end of input is discarded by
decode. Pass strict=True to raise instead.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, List

import huffman as huff
from codebook import Codebook
from errors import CodebookError, DirectionError, UnresolvedCodeError, UnresolvedSymbolError
from symbols import split_words

logger = logging.getLogger(__name__)


class Direction(enum.Enum):
    ENCODE = "encode" # source words -> target codes
    DECODE = "decode" # target codes -> source words


def _require_built(codebook: Codebook) -> None:
    if not codebook.built:
        raise CodebookError("codebook is not built")


def encode(codebook: Codebook, tokens: Iterable[huff.Token], strict: bool = False) -> List[huff.Token]:
    _require_built(codebook)
    out: List[huff.Token] = []
    for token in tokens:
        if isinstance(token, huff.Literal):
            out.append(token)
        elif isinstance(token, huff.SourceRef):
            path = codebook.path_for(token.index)
            if path is None:
                if strict:
                    raise UnresolvedSymbolError(token)
                logger.debug("dropping unresolvable %r", token)
                continue
            out.extend(huff.TargetRef(position) for position in path)
        else:
            raise DirectionError(f"encode got {token!r}; only Literal and SourceRef are valid")
    return out


@dataclass
class DecodeResult:
    tokens: List[huff.Token] = field(default_factory=list)
    pending: List[huff.TargetRef] = field(default_factory=list) # partial code left at end of input

    @property
    def dropped(self) -> int:
        return len(self.pending)


def decode_report(codebook: Codebook, tokens: Iterable[huff.Token]) -> DecodeResult:
    """Decode and also return whatever partial code was still pending at the end."""
    _require_built(codebook)
    result = DecodeResult()
    buffer = result.pending
    root = codebook.root
    for token in tokens:
        if isinstance(token, huff.Literal):
            result.tokens.append(token) # does not touch a pending partial code
        elif isinstance(token, huff.TargetRef):
            buffer.append(token)
            if root is None:
                continue
            resolved = huff.walk_path(root, [t.index for t in buffer])
            if resolved is not None:
                result.tokens.append(resolved)
                buffer.clear()
        else:
            raise DirectionError(f"decode got {token!r}; only Literal and TargetRef are valid")
    return result


def decode(codebook: Codebook, tokens: Iterable[huff.Token], strict: bool = False) -> List[huff.Token]:
    result = decode_report(codebook, tokens)
    if result.pending:
        if strict:
            raise UnresolvedCodeError(result.pending)
        logger.debug("discarding partial code of %d tokens", result.dropped)
    return result.tokens


# Text conversion

def token_to_text(codebook: Codebook, token: huff.Token) -> str:
    if isinstance(token, huff.Literal):
        return token.text
    if isinstance(token, huff.SourceRef):
        return codebook.source[token.index].text
    return codebook.target[token.index].text


def text_to_tokens(codebook: Codebook, text: str, direction: Direction) -> List[huff.Token]:
    """Split on ASCII whitespace; exact matches against the direction's table become refs."""
    tokens: List[huff.Token] = []
    for word in split_words(text):
        if direction is Direction.ENCODE:
            index = codebook.source_index(word)
            tokens.append(huff.SourceRef(index) if index is not None else huff.Literal(word))
        else:
            index = codebook.target_index(word)
            tokens.append(huff.TargetRef(index) if index is not None else huff.Literal(word))
    return tokens


def tokens_to_text(codebook: Codebook, tokens: Iterable[huff.Token]) -> str:
    return " ".join(token_to_text(codebook, token) for token in tokens)


def transliterate_line(codebook: Codebook, line: str, direction: Direction, strict: bool = False) -> str:
    tokens = text_to_tokens(codebook, line, direction)
    if direction is Direction.ENCODE:
        converted = encode(codebook, tokens, strict=strict)
    else:
        converted = decode(codebook, tokens, strict=strict)
    return tokens_to_text(codebook, converted)
