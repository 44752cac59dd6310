"""
Codebook experiments: how the n-ary Huffman codebook behaves as the target
alphabet and the source vocabulary change.

Runs repeated builds over synthetic vocabularies and measures build time,
encode/decode time over a sampled text, and the frequency-weighted code length.

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_vocab 5000 --exp1_branching 2,3,4,8,26
  python experiments.py --outdir results --exp2_max_vocab 16384 --exp2_generators zipf,uniform
"""

from __future__ import annotations

import argparse
import csv
import math
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

import codebook as cb
import huffman as huff
import transliterate as tl
from symbols import SourceSymbol, TargetSymbol


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def target_alphabet(size: int) -> List[TargetSymbol]:
    # A..Z, then AA, AB, ... so every code token is a distinct word
    out = []
    for i in range(size):
        text = ""
        n = i
        while True:
            text = chr(ord("A") + n % 26) + text
            n = n // 26 - 1
            if n < 0:
                break
        out.append(TargetSymbol(text))
    return out

def weighted_code_length(codebook: cb.Codebook) -> float:
    """Expected number of target tokens per source word, weighted by frequency."""
    lengths = codebook.code_lengths()
    total = sum(s.frequency for s in codebook.source)
    if total == 0:
        return 0.0
    return sum(codebook.source[i].frequency * n for i, n in lengths.items()) / total

def entropy_bound(symbols: List[SourceSymbol], branching: int) -> float:
    """Shannon lower bound on the mean code length, in base-`branching` digits."""
    total = sum(s.frequency for s in symbols)
    if total == 0 or branching < 2:
        return 0.0
    h = 0.0
    for s in symbols:
        if s.frequency:
            p = s.frequency / total
            h -= p * math.log(p, branching)
    return h


# Synthetic vocabulary generators

def _words(n: int) -> List[str]:
    width = len(str(n))
    return [f"w{i:0{width}d}" for i in range(n)]

def gen_uniform(vocab: int, seed: int = 0) -> List[SourceSymbol]:
    rng = random.Random(seed)
    return [SourceSymbol(w, rng.randint(90, 110)) for w in _words(vocab)]

def gen_zipf_like(vocab: int, s: float = 1.1, scale: int = 1_000_000, seed: int = 0) -> List[SourceSymbol]:
    rng = random.Random(seed)
    words = _words(vocab)
    rng.shuffle(words) # rank is not alphabetical
    return [SourceSymbol(w, max(1, int(scale / ((i + 1) ** s)))) for i, w in enumerate(words)]

def gen_repetitive(vocab: int, dom_frac: float = 0.90, seed: int = 0) -> List[SourceSymbol]:
    rng = random.Random(seed)
    rest = max(1, vocab - 1)
    dominant = int(1_000_000 * dom_frac)
    other = max(1, int(1_000_000 * (1 - dom_frac) / rest))
    symbols = [SourceSymbol(w, other + rng.randint(0, 3)) for w in _words(vocab)]
    symbols[0] = SourceSymbol(symbols[0].text, dominant)
    return symbols

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], List[SourceSymbol]]] = {
    "uniform": lambda vocab, seed: gen_uniform(vocab, seed=seed),
    "zipf": lambda vocab, seed: gen_zipf_like(vocab, s=1.1, seed=seed),
    "zipf_steep": lambda vocab, seed: gen_zipf_like(vocab, s=1.6, seed=seed),
    "repetitive90": lambda vocab, seed: gen_repetitive(vocab, dom_frac=0.90, seed=seed),
}

def generate_vocabulary(name: str, vocab: int, seed: int) -> Tuple[str, List[SourceSymbol]]:
    """
    Helper: an unknown generator name falls back to zipf so the run still
    produces data instead of failing halfway through
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_zipf", gen_zipf_like(vocab, seed=seed)
    return name, fn(vocab, seed)

def sample_text(symbols: List[SourceSymbol], n_words: int, seed: int = 0) -> str:
    """Draw n_words by frequency, sprinkled with a few out-of-vocabulary literals."""
    rng = random.Random(seed)
    cdf = []
    acc = 0
    for s in symbols:
        acc += s.frequency
        cdf.append(acc)

    words = []
    for i in range(n_words):
        if i % 50 == 49:
            words.append("<lit>")
            continue
        r = rng.random() * acc
        lo, hi = 0, len(cdf) - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if r < cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        words.append(symbols[lo].text)
    return " ".join(words)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    vocab_size: int
    branching: int
    run_id: int

    build_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    tree_depth: int
    mean_code_length: float
    entropy_bound: float
    encoded_tokens: int
    correctness_ok: int  # 1 or 0


def run_one(symbols: List[SourceSymbol], branching: int, text: str, seed: int) -> MetricRow:
    target = target_alphabet(branching)

    t0 = now_ns()
    codebook = cb.build_codebook(symbols, target, seed=seed)
    t1 = now_ns()

    t2 = now_ns()
    encoded = tl.transliterate_line(codebook, text, tl.Direction.ENCODE)
    t3 = now_ns()

    t4 = now_ns()
    decoded = tl.transliterate_line(codebook, encoded, tl.Direction.DECODE)
    t5 = now_ns()

    build_ms = ns_to_ms(t1 - t0)
    encode_ms = ns_to_ms(t3 - t2)
    decode_ms = ns_to_ms(t5 - t4)

    return MetricRow(
        exp_name="",
        dataset_name="",
        vocab_size=len(symbols),
        branching=branching,
        run_id=0,
        build_ms=build_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_ms + encode_ms + decode_ms,
        tree_depth=huff.tree_depth(codebook.root),
        mean_code_length=weighted_code_length(codebook),
        entropy_bound=entropy_bound(symbols, branching),
        encoded_tokens=len(encoded.split()),
        correctness_ok=1 if decoded == text else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)


def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, vocab_size, branching and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, int], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.vocab_size, r.branching)
        key_to.setdefault(key, []).append(r)

    measured = ["build_ms", "encode_ms", "decode_ms", "total_ms", "mean_code_length"]
    summary_fields = ["exp_name", "dataset_name", "vocab_size", "branching", "n_runs", "entropy_bound"]
    for m in measured:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, vocab, branching = key
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "vocab_size": vocab,
                "branching": branching,
                "n_runs": len(items),
                "entropy_bound": statistics.mean(x.entropy_bound for x in items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in measured:
                out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(out)


# Plotting

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_branching"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))

    def mean_for(dataset: str, branching: int, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.branching == branching]
        return statistics.mean(vals) if vals else float("nan")

    plt.figure()
    for d in datasets:
        ks = sorted(set(r.branching for r in exp_rows if r.dataset_name == d))
        plt.plot(ks, [mean_for(d, k, "mean_code_length") for k in ks], marker="o", label=d)
        plt.plot(ks, [mean_for(d, k, "entropy_bound") for k in ks], linestyle="--", label=f"{d} (entropy)")
    plt.xlabel("Target Alphabet Size")
    plt.ylabel("Mean Code Length (target tokens / word)")
    plt.title("Experiment 1: Code Length by Branching Factor")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_code_length.png", dpi=200)
    plt.close()

    plt.figure()
    for d in datasets:
        ks = sorted(set(r.branching for r in exp_rows if r.dataset_name == d))
        plt.plot(ks, [mean_for(d, k, "build_ms") for k in ks], marker="o", label=d)
    plt.xlabel("Target Alphabet Size")
    plt.ylabel("Build Time (ms)")
    plt.title("Experiment 1: Build Time by Branching Factor")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_build_time.png", dpi=200)
    plt.close()


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_vocab_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.vocab_size for r in dist_rows))

        def mean_size(size: int, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.vocab_size == size]
            return statistics.mean(vals) if vals else float("nan")

        plt.figure()
        for field in ("build_ms", "encode_ms", "decode_ms"):
            plt.plot(sizes, [mean_size(s, field) for s in sizes], marker="o", label=field)
        plt.xscale("log", base=2)
        plt.xlabel("Vocabulary Size (source symbols)")
        plt.ylabel("Time (ms)")
        plt.title(f"Experiment 2: Time vs Vocabulary Size ({dist})")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_time_{dist}.png", dpi=200)
        plt.close()


def plot_code_length_by_rank(symbols: List[SourceSymbol], branchings: List[int], outdir: Path, seed: int) -> None:
    """Experiment 3: code length of every word against its frequency rank."""
    order = sorted(range(len(symbols)), key=lambda i: -symbols[i].frequency)
    plt.figure()
    for k in branchings:
        codebook = cb.build_codebook(symbols, target_alphabet(k), seed=seed)
        lengths = codebook.code_lengths()
        plt.plot(range(1, len(order) + 1), [lengths[i] for i in order], label=f"k={k}")
    plt.xscale("log")
    plt.xlabel("Frequency Rank")
    plt.ylabel("Code Length (target tokens)")
    plt.title("Experiment 3: Code Length by Frequency Rank")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp3_code_length_by_rank.png", dpi=200)
    plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--text_words", type=int, default=2000, help="Words of sampled text per encode/decode run")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (branching factor)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (vocabulary scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (code length by rank)")

    # Experiment 1 controls
    ap.add_argument("--exp1_vocab", type=int, default=2000, help="Experiment 1 fixed vocabulary size")
    ap.add_argument("--exp1_branching", type=str, default="2,3,4,8,16,26",
                    help="Comma-separated target alphabet sizes for experiment 1")
    ap.add_argument("--exp1_generators", type=str, default="uniform,zipf,zipf_steep,repetitive90",
                    help="Comma-separated vocabulary generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_vocab", type=int, default=64, help="Experiment 2 min vocabulary (power-of-two growth)")
    ap.add_argument("--exp2_max_vocab", type=int, default=8192, help="Experiment 2 max vocabulary")
    ap.add_argument("--exp2_branching", type=int, default=26, help="Experiment 2 target alphabet size")
    ap.add_argument("--exp2_generators", type=str, default="uniform,zipf",
                    help="Comma-separated vocabulary generator names for experiment 2")

    args = ap.parse_args()

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    # Experiment 1: branching factor (fixed vocabulary)
    if not args.no_exp1:
        branchings = [int(k) for k in parse_csv_list(args.exp1_branching)]
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                seed = args.seed + run_id
                dataset_name, symbols = generate_vocabulary(gen_name, args.exp1_vocab, seed)
                text = sample_text(symbols, args.text_words, seed=seed)
                for k in branchings:
                    row = run_one(symbols, k, text, seed)
                    row.exp_name = "exp1_branching"
                    row.dataset_name = dataset_name
                    row.run_id = run_id
                    rows.append(row)

    # Experiment 2: vocabulary scaling (powers of 2)
    if not args.no_exp2:
        sizes: List[int] = []
        s = max(1, args.exp2_min_vocab)
        while s <= args.exp2_max_vocab:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for vocab in sizes:
                for run_id in range(1, args.runs + 1):
                    seed = args.seed + 10_000 + vocab + run_id
                    dataset_name, symbols = generate_vocabulary(gen_name, vocab, seed)
                    text = sample_text(symbols, args.text_words, seed=seed)
                    row = run_one(symbols, args.exp2_branching, text, seed)
                    row.exp_name = "exp2_vocab_scaling"
                    row.dataset_name = dataset_name
                    row.run_id = run_id
                    rows.append(row)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
    plot_experiment_1(rows, outdir)
    plot_experiment_2(rows, outdir)
    if not args.no_exp3:
        _, symbols = generate_vocabulary("zipf", args.exp1_vocab, args.seed)
        plot_code_length_by_rank(symbols, [2, 4, 26], outdir, args.seed)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Round-trip correctness rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
