import random

import pytest

import codebook as cb
from symbols import SourceSymbol, TargetSymbol


@pytest.fixture
def animals_tables():
    source = [SourceSymbol("the", 100), SourceSymbol("cat", 10), SourceSymbol("sat", 10)]
    target = [TargetSymbol("A"), TargetSymbol("B")]
    return source, target


@pytest.fixture
def animals(animals_tables):
    source, target = animals_tables
    return cb.build(cb.Codebook.from_tables(source, target), rng=random.Random(1))


@pytest.fixture
def zipf_tables():
    words = ["w%02d" % i for i in range(40)]
    source = [SourceSymbol(w, 1000 // (i + 1) + 40 - i) for i, w in enumerate(words)]
    target = [TargetSymbol(t) for t in ("x", "y", "z")]
    return source, target
