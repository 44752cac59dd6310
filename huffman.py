import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)


# Tokens

@dataclass(frozen=True)
class Literal: # text found in neither table, passed through untouched
    text: str

@dataclass(frozen=True)
class SourceRef: # index into the source ("from") table
    index: int

@dataclass(frozen=True)
class TargetRef: # index into the target ("to") table
    index: int

Token = Union[Literal, SourceRef, TargetRef]


# Tree nodes

class Leaf: # holds a source reference once seeded
    __slots__ = ("token", "frequency")

    def __init__(self, token: Token, frequency: int = 0):
        self.token = token
        self.frequency = frequency

    def __repr__(self):
        return f"Leaf({self.token!r})"

class Branch: # child position i stands for TargetRef(i)
    __slots__ = ("children", "frequency")

    def __init__(self, children: List["Node"]):
        self.children = children
        self.frequency = sum(child.frequency for child in children) # fixed once built, children never change

    def __repr__(self):
        return f"Branch({self.children!r})"

Node = Union[Leaf, Branch]


def node_frequency(node: Node, frequency_of: Callable[[Token], int]) -> int:
    """Sum of the leaf frequencies beneath node, recomputed from the tables."""
    if isinstance(node, Leaf):
        return frequency_of(node.token)
    return sum(node_frequency(child, frequency_of) for child in node.children)


def build_tree(roots: List[Node], branching: int, frequency_of: Callable[[Token], int],
               rng: Optional[random.Random] = None) -> List[Node]:
    """
    Generalized (n-ary) Huffman merge, done in place on roots.

    Each round sorts the forest ascending by frequency (stable), takes the
    `branching` lightest roots, shuffles them and pushes a Branch over them.
    Stops when at most one root is left. The shuffle keeps child position
    (the target token) uncorrelated with frequency rank.
    """
    if len(roots) > 1 and branching < 2:
        raise ValueError(f"cannot merge {len(roots)} roots with branching factor {branching}")

    shuffle = rng.shuffle if rng is not None else random.shuffle

    # Leaves read their weight from the tables once; branches sum their children
    for node in roots:
        if isinstance(node, Leaf):
            node.frequency = frequency_of(node.token)

    merges = 0
    while len(roots) > 1:
        roots.sort(key=lambda node: node.frequency)
        children = roots[:branching] # fewer than branching left -> take them all
        del roots[:branching]
        shuffle(children)
        roots.append(Branch(children))
        merges += 1

    logger.debug("built tree with %d merges (branching=%d)", merges, branching)
    return roots


def find_path(node: Node, token: Token) -> Optional[List[int]]:
    """Child positions leading from node down to the leaf holding token, or None."""
    if isinstance(node, Leaf):
        return [] if node.token == token else None
    for position, child in enumerate(node.children):
        rest = find_path(child, token)
        if rest is not None: # first match is the only match, leaves are unique
            return [position] + rest
    return None


def walk_path(node: Node, indices: Sequence[int]) -> Optional[Token]:
    """
    Follow child-selection indices from node. Returns the leaf token reached
    or None when the path runs out inside a Branch or an index is out of range.
    Indices left over after reaching a leaf are ignored.
    """
    for index in indices:
        if isinstance(node, Leaf):
            break
        if not 0 <= index < len(node.children):
            return None
        node = node.children[index]
    if isinstance(node, Leaf):
        return node.token
    return None


def iter_leaves(node: Optional[Node]) -> Iterator[Leaf]:
    if node is None:
        return
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Leaf):
            yield current
        else:
            stack.extend(reversed(current.children))


def tree_depth(node: Optional[Node]) -> int:
    if node is None or isinstance(node, Leaf):
        return 0
    return 1 + max((tree_depth(child) for child in node.children), default=0)


def generate_codes(root: Optional[Node]) -> Dict[Token, List[int]]: # root: root of the built tree
    codes: Dict[Token, List[int]] = {}
    def generate_codes_helper(node, current_code): # recursive helper function to collect every leaf path
        if isinstance(node, Leaf):
            codes[node.token] = current_code
            return
        for position, child in enumerate(node.children):
            generate_codes_helper(child, current_code + [position])

    if root is not None:
        generate_codes_helper(root, [])
    return codes # return the mapping of leaf tokens to their child-position paths
