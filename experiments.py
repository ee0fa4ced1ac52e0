"""
Huffman tree experiments: built tree vs described tree

Runs repeated experiments over synthetic datasets and compares two decode
pipelines:
  - built      decode with the tree returned by the builder
  - described  write the text description, read it back, decode with the rebuilt tree

A third experiment feeds Fibonacci frequency tables to the builder, which
produces the deepest possible trees, and times serialize/deserialize on them.

Outputs (in --outdir):
  - metrics.csv     (raw row per run per pipeline)
  - summary.csv     (grouped mean/stdev)
  - skew.csv        (experiment 3 rows)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 64 --exp2_max_mb 1
  python experiments.py --outdir results --exp3_alphabets 16,64,256 --no_exp2
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import time
from bisect import bisect_left
from dataclasses import dataclass, fields
from itertools import accumulate
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

import matplotlib.pyplot as plt

import huffman as huff
from bitio import BitInputStream, pack_bits
from decoder import decode_bytes
from tree_format import tree_from_text, tree_to_text

PIPELINES = ("built", "described")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def timed(fn: Callable, *args):
    t0 = now_ns()
    result = fn(*args)
    return result, ns_to_ms(now_ns() - t0)


# Synthetic dataset generators

def _sample_weighted(rng: random.Random, symbols: Sequence[int], weights: Sequence[float], size: int) -> bytes:
    cdf = list(accumulate(weights))
    total = cdf[-1]
    last = len(cdf) - 1
    return bytes(symbols[min(bisect_left(cdf, rng.random() * total), last)] for _ in range(size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(others) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((rank + 1) ** s) for rank in range(alphabet)]
    return _sample_weighted(rng, list(range(alphabet)), weights, size)

ENGLISH_WEIGHTS = {' ': 13.0, '\n': 1.5}
ENGLISH_WEIGHTS.update({c: 6.0 for c in "etaoinshrdlu"})
ENGLISH_WEIGHTS.update({c: 2.5 for c in "cmfwgypbvk"})
ENGLISH_WEIGHTS.update({c: 1.2 for c in "jxqz"})

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    symbols = []
    weights = []
    for ch, w in ENGLISH_WEIGHTS.items():
        symbols.append(ord(ch))
        weights.append(w)
        if ch.isalpha():
            symbols.append(ord(ch.upper()))
            weights.append(w / 10.0)
    return _sample_weighted(rng, symbols, weights, size)

def fibonacci_table(alphabet: int) -> Dict[int, int]:
    """Frequencies 1, 2, 3, 5, ... plus the end-of-stream 1 force every merge onto one spine: depth == alphabet."""
    table = {}
    a, b = 1, 2
    for symbol in range(alphabet):
        table[symbol] = a
        a, b = b, a + b
    return table

def gen_fibonacci_skewed(size: int, alphabet: int = 24, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    table = fibonacci_table(alphabet)
    return _sample_weighted(rng, list(table), list(table.values()), size)

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform16": lambda size, seed: gen_uniform(size, alphabet=16, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "fibonacci24": lambda size, seed: gen_fibonacci_skewed(size, alphabet=24, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> bytes:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"unknown dataset generator {name!r}; choose from {', '.join(GENERATOR_REGISTRY)}")
    return fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "built" or "described"
    unique_symbols: int
    tree_depth: int
    avg_code_length: float

    build_ms: float
    serialize_ms: float
    deserialize_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    description_bytes: int
    compressed_bytes: int
    pad_bits: int
    compression_ratio: float  # payload only
    stored_ratio: float  # payload + description

    paths_match: int  # 1 or 0
    correctness_ok: int  # 1 or 0


@dataclass
class SkewRow:
    alphabet: int
    run_id: int
    tree_depth: int
    build_ms: float
    serialize_ms: float
    deserialize_ms: float
    paths_match: int


def run_one(data: bytes, pipeline: str, exp_name: str = "", dataset_name: str = "", run_id: int = 0) -> MetricRow:
    if pipeline not in PIPELINES:
        raise ValueError(f"pipeline must be one of {PIPELINES}")

    ft = huff.freq_table(data)
    tree, build_ms = timed(huff.build_huffman_tree, ft)
    code_map = huff.generate_huffman_codes(tree)

    serialize_ms = 0.0
    deserialize_ms = 0.0
    description_bytes = 0
    decode_tree = tree
    paths_match = 1

    if pipeline == "described":
        text, serialize_ms = timed(tree_to_text, tree)
        description_bytes = len(text.encode("ascii"))
        decode_tree, deserialize_ms = timed(tree_from_text, text)
        paths_match = int(huff.generate_huffman_codes(decode_tree) == code_map)

    t0 = now_ns()
    bits = huff.huffman_encode(data, code_map, eof=tree.eof)
    packed, pad_bits = pack_bits(bits)
    encode_ms = ns_to_ms(now_ns() - t0)

    decoded, decode_ms = timed(decode_bytes, decode_tree, BitInputStream(packed))

    size = max(1, len(data))
    return MetricRow(
        exp_name=exp_name,
        dataset_name=dataset_name,
        file_size_bytes=len(data),
        run_id=run_id,
        pipeline=pipeline,
        unique_symbols=len(ft),
        tree_depth=tree.depth(),
        avg_code_length=tree.average_code_length(ft),
        build_ms=build_ms,
        serialize_ms=serialize_ms,
        deserialize_ms=deserialize_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_ms + serialize_ms + deserialize_ms + encode_ms + decode_ms,
        description_bytes=description_bytes,
        compressed_bytes=len(packed),
        pad_bits=pad_bits,
        compression_ratio=len(packed) / size,
        stored_ratio=(len(packed) + description_bytes) / size,
        paths_match=paths_match,
        correctness_ok=int(decoded == data),
    )


def run_skew(alphabet: int, run_id: int = 0) -> SkewRow:
    table = fibonacci_table(alphabet)
    tree, build_ms = timed(huff.build_huffman_tree, table)
    text, serialize_ms = timed(tree_to_text, tree)
    rebuilt, deserialize_ms = timed(tree_from_text, text)
    return SkewRow(
        alphabet=alphabet,
        run_id=run_id,
        tree_depth=tree.depth(),
        build_ms=build_ms,
        serialize_ms=serialize_ms,
        deserialize_ms=deserialize_ms,
        paths_match=int(huff.generate_huffman_codes(rebuilt) == huff.generate_huffman_codes(tree)),
    )


def write_csv(path: Path, rows: list) -> None:
    if not rows:
        return
    names = [f.name for f in fields(rows[0])]
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=names)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in names})


SUMMARY_METRICS = (
    "compression_ratio", "stored_ratio", "avg_code_length",
    "build_ms", "serialize_ms", "deserialize_ms", "encode_ms", "decode_ms", "total_ms",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, pipeline and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.pipeline)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "pipeline", "n_runs"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields += ["paths_match_rate", "correctness_ok_rate"]

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, pipeline = key
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "pipeline": pipeline,
                "n_runs": len(items),
                "paths_match_rate": sum(x.paths_match for x in items) / len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                row[f"{m}_mean"], row[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(row)


# Plotting

def _save(outdir: Path, name: str) -> None:
    plt.tight_layout()
    plt.savefig(outdir / name, dpi=200)
    plt.close()

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, pipeline: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    plt.figure()
    plt.plot(x, [mean_for(d, "built", "compression_ratio") for d in datasets], marker="o", label="payload")
    plt.plot(x, [mean_for(d, "described", "stored_ratio") for d in datasets], marker="o", label="payload + description")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Compressed Bytes / Original Bytes")
    plt.title("Experiment 1: Compression Ratio by Distribution")
    plt.legend()
    _save(outdir, "exp1_compression_ratio.png")

    plt.figure()
    for p in PIPELINES:
        plt.plot(x, [mean_for(d, p, "total_ms") for d in datasets], marker="o", label=p)
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Total Time (ms)")
    plt.title("Experiment 1: Total Runtime by Distribution")
    plt.legend()
    _save(outdir, "exp1_total_time.png")

    plt.figure()
    plt.bar(x, [mean_for(d, "built", "tree_depth") for d in datasets])
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Tree Depth")
    plt.title("Experiment 1: Tree Depth by Distribution")
    _save(outdir, "exp1_tree_depth.png")


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, pipeline: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.pipeline == pipeline]
            return statistics.mean(vals) if vals else float("nan")

        plt.figure()
        for p in PIPELINES:
            plt.plot(sizes, [mean_size(s, p, "decode_ms") for s in sizes], marker="o", label=p)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Decode Time (ms)")
        plt.title(f"Experiment 2: Decode Time vs Size ({dist})")
        plt.legend()
        _save(outdir, f"exp2_decode_time_{dist}.png")

        plt.figure()
        plt.plot(sizes, [mean_size(s, "built", "compression_ratio") for s in sizes], marker="o", label="payload")
        plt.plot(sizes, [mean_size(s, "described", "stored_ratio") for s in sizes], marker="o", label="payload + description")
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Compressed Bytes / Original Bytes")
        plt.title(f"Experiment 2: Compression Ratio vs Size ({dist})")
        plt.legend()
        _save(outdir, f"exp2_compression_ratio_{dist}.png")


def plot_experiment_3(rows: List[SkewRow], outdir: Path) -> None:
    if not rows:
        return

    alphabets = sorted(set(r.alphabet for r in rows))

    def mean_alpha(alphabet: int, field: str) -> float:
        return statistics.mean(getattr(r, field) for r in rows if r.alphabet == alphabet)

    plt.figure()
    plt.plot(alphabets, [mean_alpha(a, "tree_depth") for a in alphabets], marker="o")
    plt.xlabel("Alphabet Size (symbols)")
    plt.ylabel("Tree Depth")
    plt.title("Experiment 3: Depth of Fibonacci-Skewed Trees")
    _save(outdir, "exp3_tree_depth.png")

    plt.figure()
    for field in ("build_ms", "serialize_ms", "deserialize_ms"):
        plt.plot(alphabets, [mean_alpha(a, field) for a in alphabets], marker="o", label=field[:-3])
    plt.xlabel("Alphabet Size (symbols)")
    plt.ylabel("Time (ms)")
    plt.title("Experiment 3: Tree Operations on Skewed Trees")
    plt.legend()
    _save(outdir, "exp3_tree_ops_time.png")


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (skewed trees)")

    ap.add_argument("--exp1_size_kb", type=int, default=256, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like,fibonacci24",
                    help="Comma-separated dataset generator names for experiment 1")

    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_mb", type=int, default=4, help="Experiment 2 max size in MB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 2")

    ap.add_argument("--exp3_alphabets", type=str, default="8,16,32,64,128,256",
                    help="Comma-separated alphabet sizes for experiment 3")
    return ap

def main(argv: List[str] = None) -> int:
    args = build_parser().parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []
    skew_rows: List[SkewRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                for pipeline in PIPELINES:
                    rows.append(run_one(data, pipeline, "exp1_distribution", gen_name, run_id))

    # Experiment 2: size scaling (powers of 2)
    if not args.no_exp2:
        min_bytes = max(1, args.exp2_min_kb) * 1024
        max_bytes = max(1, args.exp2_max_mb) * 1024 * 1024
        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    for pipeline in PIPELINES:
                        rows.append(run_one(data, pipeline, "exp2_size_scaling", gen_name, run_id))

    # Experiment 3: maximally skewed trees
    if not args.no_exp3:
        for alphabet in (int(a) for a in parse_csv_list(args.exp3_alphabets)):
            for run_id in range(1, args.runs + 1):
                skew_rows.append(run_skew(alphabet, run_id))

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)
    write_csv(outdir / "skew.csv", skew_rows)

    plot_experiment_1(rows, outdir)
    plot_experiment_2(rows, outdir)
    plot_experiment_3(skew_rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    match_rate = sum(r.paths_match for r in rows + skew_rows) / max(1, len(rows) + len(skew_rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Wrote {len(skew_rows)} skewed-tree rows to {outdir / 'skew.csv'}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    print(f"Description round-trip path match rate: {match_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
