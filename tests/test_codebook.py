import json
import random

import pytest

import codebook as cb
import huffman as huff
import transliterate as tl
from errors import CodebookError, CodebookFormatError
from symbols import SourceSymbol, TargetSymbol


def test_from_tables_seeds_one_leaf_per_symbol(animals_tables):
    source, target = animals_tables
    book = cb.Codebook.from_tables(source, target)
    assert [leaf.token for leaf in book.roots] == [huff.SourceRef(0), huff.SourceRef(1), huff.SourceRef(2)]
    assert not book.built


def test_most_frequent_word_gets_shortest_code(animals):
    lengths = animals.code_lengths()
    assert lengths[0] == 1
    assert lengths[1] == 2
    assert lengths[2] == 2


def test_leaf_bijection_after_build(zipf_tables):
    source, target = zipf_tables
    book = cb.build_codebook(source, target, seed=5)
    indices = sorted(leaf.token.index for leaf in huff.iter_leaves(book.root))
    assert indices == list(range(len(source)))
    assert len(book.roots) == 1


def test_build_twice_is_rejected(animals):
    with pytest.raises(CodebookError):
        cb.build(animals)


def test_source_frequencies_are_not_touched(animals_tables):
    source, target = animals_tables
    book = cb.build_codebook(source, target, seed=0)
    assert [s.frequency for s in book.source] == [100, 10, 10]


def test_seeded_builds_are_reproducible(zipf_tables):
    source, target = zipf_tables
    a = cb.build_codebook(source, target, seed=99)
    b = cb.build_codebook(source, target, seed=99)
    assert cb.to_dict(a) == cb.to_dict(b)


def test_empty_source_table():
    book = cb.build_codebook([], [TargetSymbol("A"), TargetSymbol("B")])
    assert book.roots == []
    assert book.root is None
    assert book.path_for(0) is None
    assert book.code_lengths() == {}


def test_single_source_symbol_has_empty_code():
    book = cb.build_codebook([SourceSymbol("only", 3)], [TargetSymbol("A")])
    assert isinstance(book.root, huff.Leaf)
    assert book.path_for(0) == []


def test_no_target_symbols_cannot_build_a_tree():
    with pytest.raises(ValueError):
        cb.build_codebook([SourceSymbol("a", 1), SourceSymbol("b", 2)], [])


def test_first_duplicate_text_wins():
    book = cb.Codebook.from_tables([SourceSymbol("dup", 1), SourceSymbol("dup", 2)], [TargetSymbol("A")])
    assert book.source_index("dup") == 0
    assert book.source_index("nope") is None


# Persistence

def test_save_and_load_gives_identical_output(tmp_path, zipf_tables):
    source, target = zipf_tables
    book = cb.build_codebook(source, target, seed=3)
    path = tmp_path / "mapping.json"
    cb.save_codebook(path, book)
    loaded = cb.load_codebook(path)

    assert cb.to_dict(loaded) == cb.to_dict(book)
    line = " ".join(s.text for s in source) + " unknown"
    encoded = tl.transliterate_line(book, line, tl.Direction.ENCODE)
    assert tl.transliterate_line(loaded, line, tl.Direction.ENCODE) == encoded
    assert tl.transliterate_line(loaded, encoded, tl.Direction.DECODE) == line


def test_loaded_leaves_carry_frequencies(tmp_path, animals):
    path = tmp_path / "m.json"
    cb.save_codebook(path, animals)
    loaded = cb.load_codebook(path)
    assert loaded.built
    assert loaded.root.frequency == 120


def test_document_layout(animals):
    doc = cb.to_dict(animals)
    assert doc["format"] == 1
    assert doc["from"][0] == {"text": "the", "frequency": 100}
    assert doc["to"] == [{"text": "A"}, {"text": "B"}]
    assert len(doc["tree"]) == 1
    assert "branches" in doc["tree"][0]


def test_unbuilt_codebook_cannot_be_saved(tmp_path, animals_tables):
    with pytest.raises(CodebookError):
        cb.save_codebook(tmp_path / "m.json", cb.Codebook.from_tables(*animals_tables))


def test_empty_codebook_round_trips(tmp_path):
    path = tmp_path / "empty.json"
    cb.save_codebook(path, cb.build_codebook([], [TargetSymbol("A")]))
    assert cb.load_codebook(path).roots == []


def _tampered(animals, mutate):
    doc = json.loads(json.dumps(cb.to_dict(animals)))
    mutate(doc)
    return doc


def _first_leaf_holder(node):
    for i, child in enumerate(node["branches"]):
        if "leaf" in child:
            return node, i
    return _first_leaf_holder(node["branches"][0])


def _duplicate_leaf(doc):
    parent, i = _first_leaf_holder(doc["tree"][0])
    other = 1 - i
    parent["branches"][other] = {"leaf": dict(parent["branches"][i]["leaf"])}


@pytest.mark.parametrize("mutate", [
    _duplicate_leaf,
    lambda doc: doc["tree"][0]["branches"].append({"leaf": {"from": 0}}),
    lambda doc: doc["tree"].append({"leaf": {"from": 0}}),
    lambda doc: doc["tree"][0].update({"branches": []}),
    lambda doc: doc.update({"from": doc["from"] + [{"text": "extra", "frequency": 1}]}),
    lambda doc: doc.update({"format": 2}),
    lambda doc: doc.pop("to"),
    lambda doc: doc.update({"tree": [{"twig": []}]}),
])
def test_malformed_documents_are_rejected(animals, mutate):
    with pytest.raises(CodebookFormatError):
        cb.from_dict(_tampered(animals, mutate))


def test_load_rejects_non_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CodebookFormatError):
        cb.load_codebook(path)


@pytest.mark.parametrize("frequency", [-1, 3.7, True, "10", None])
def test_bad_frequencies_are_rejected(animals, frequency):
    def mutate(doc):
        doc["from"][1]["frequency"] = frequency
    with pytest.raises(CodebookFormatError):
        cb.from_dict(_tampered(animals, mutate))
