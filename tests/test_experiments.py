import csv

import pytest

import experiments as exp
import huffman as huff


@pytest.mark.parametrize("name", sorted(exp.GENERATOR_REGISTRY))
def test_generators_are_deterministic(name):
    a = exp.generate_dataset(name, 512, seed=5)
    assert len(a) == 512
    assert a == exp.generate_dataset(name, 512, seed=5)


def test_unknown_generator():
    with pytest.raises(ValueError):
        exp.generate_dataset("nope", 10, seed=0)


@pytest.mark.parametrize("pipeline", exp.PIPELINES)
def test_run_one_round_trips(pipeline):
    data = exp.gen_english_like(4096, seed=3)
    row = exp.run_one(data, pipeline, "t", "english_like", 1)
    assert row.correctness_ok == 1
    assert row.paths_match == 1
    assert row.compressed_bytes < len(data)
    if pipeline == "described":
        assert row.description_bytes > 0
        assert row.stored_ratio > row.compression_ratio
    else:
        assert row.description_bytes == 0


def test_run_one_rejects_unknown_pipeline():
    with pytest.raises(ValueError):
        exp.run_one(b"abc", "huffman+obst")


def test_skewed_trees_are_deep():
    row = exp.run_skew(64)
    assert row.tree_depth == 64
    assert row.paths_match == 1


def test_main_writes_outputs(tmp_path):
    rc = exp.main([
        "--outdir", str(tmp_path), "--runs", "1",
        "--exp1_size_kb", "1", "--exp1_generators", "uniform16,repetitive90",
        "--no_exp2", "--exp3_alphabets", "8,16",
    ])
    assert rc == 0
    with (tmp_path / "summary.csv").open() as f:
        summary = list(csv.DictReader(f))
    assert summary
    assert all(float(r["correctness_ok_rate"]) == 1.0 for r in summary)
    assert (tmp_path / "skew.csv").exists()
    assert (tmp_path / "exp1_compression_ratio.png").exists()
    assert (tmp_path / "exp3_tree_depth.png").exists()


def test_size_scaling_plots(tmp_path):
    rows = []
    for size in (256, 512):
        data = exp.gen_zipf_like(size, seed=size)
        for pipeline in exp.PIPELINES:
            rows.append(exp.run_one(data, pipeline, "exp2_size_scaling", "zipf128", 1))
    exp.plot_experiment_2(rows, tmp_path)
    assert (tmp_path / "exp2_decode_time_zipf128.png").exists()
    assert (tmp_path / "exp2_compression_ratio_zipf128.png").exists()


@pytest.mark.parametrize("alphabet", [1, 2, 8, 40])
def test_fibonacci_table_builds_a_single_spine(alphabet):
    tree = huff.build_huffman_tree(exp.fibonacci_table(alphabet))
    assert tree.depth() == alphabet
