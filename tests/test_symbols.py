import io
import logging

import symbols as sym


def test_count_frequencies_default_filter():
    lines = ["the cat sat on the mat", "The dog, the end", "café the"]
    symbols = sym.count_frequencies(lines)
    counts = {s.text: s.frequency for s in symbols}
    assert counts == {"the": 4, "cat": 1, "sat": 1, "on": 1, "mat": 1, "end": 1}
    assert [s.text for s in symbols] == sorted(counts)


def test_count_frequencies_permissive_filter():
    f = sym.WordFilter(allow_non_ascii=True, allow_capitals=True, allow_punctuation=True)
    counts = {s.text: s.frequency for s in sym.count_frequencies(["The dog, café"], f)}
    assert counts == {"The": 1, "dog,": 1, "café": 1}


def test_dictionary_filter(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("cat\nmat\n\n", encoding="utf-8")
    f = sym.WordFilter(dictionary=sym.load_dictionary(path))
    counts = {s.text: s.frequency for s in sym.count_frequencies(["the cat sat on the mat cat"], f)}
    assert counts == {"cat": 2, "mat": 1}


def test_source_csv_round_trip(tmp_path):
    path = tmp_path / "from.csv"
    symbols = [sym.SourceSymbol("the", 100), sym.SourceSymbol("cat", 10)]
    sym.write_source_symbols(path, symbols)
    assert sym.load_source_symbols(path) == symbols


def test_target_csv_from_stream():
    data = io.StringIO("text\nA\nB\n\nC\n")
    assert sym.load_target_symbols(data) == [sym.TargetSymbol("A"), sym.TargetSymbol("B"), sym.TargetSymbol("C")]


def test_malformed_source_rows_are_skipped(caplog):
    data = io.StringIO(
        "text,frequency\n"
        "the,100\n"
        "cat,lots\n"
        "sat\n"
        ",5\n"
        "mat,-1\n"
        "on,3\n"
    )
    with caplog.at_level(logging.WARNING, logger="symbols"):
        symbols = sym.load_source_symbols(data)
    assert symbols == [sym.SourceSymbol("the", 100), sym.SourceSymbol("on", 3)]
    assert len(caplog.records) == 4


def test_write_to_stream():
    out = io.StringIO()
    sym.write_target_symbols(out, [sym.TargetSymbol("A")])
    assert out.getvalue().splitlines() == ["text", "A"]


def test_rows_that_are_not_utf8_are_skipped(tmp_path, caplog):
    path = tmp_path / "from.csv"
    path.write_bytes(b"text,frequency\nthe,100\nca\xfft,10\nsat,10\n")
    with caplog.at_level(logging.WARNING, logger="symbols"):
        symbols = sym.load_source_symbols(path)
    assert symbols == [sym.SourceSymbol("the", 100), sym.SourceSymbol("sat", 10)]
    assert "not valid UTF-8" in caplog.text


def test_target_rows_that_are_not_utf8_are_skipped(tmp_path):
    path = tmp_path / "to.csv"
    path.write_bytes(b"text\nA\n\xfe\xff\nB\n")
    assert sym.load_target_symbols(path) == [sym.TargetSymbol("A"), sym.TargetSymbol("B")]


def test_words_split_on_ascii_whitespace_only():
    assert sym.split_words(" a\tb\u00a0c\r\nd\fe\u3000f ") == ["a", "b\u00a0c", "d", "e\u3000f"]
    f = sym.WordFilter(allow_non_ascii=True, allow_punctuation=True)
    counts = {s.text: s.frequency for s in sym.count_frequencies(["x\u00a0y x"], f)}
    assert counts == {"x": 1, "x\u00a0y": 1}
