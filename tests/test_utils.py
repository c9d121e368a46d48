"""Test shared utilities.

Tests for src.utils:
    - compute: row_slices coverage/balance, to_uint8 quantization, assert_finite
    - hashing: array/string/dict digests, dtype and shape sensitivity
    - profiler: timer sink, TimerAccumulator statistics
    - fs: load_yaml, ensure_dir
    - logging_config: idempotent setup, JSON file output with context fields,
      scoped log_context, human format

Run:
    pytest tests/test_utils.py -v
"""

import json
import logging

import numpy as np
import pytest

from src.utils import compute, fs, hashing, logging_config, profiler


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def reset_logging():
    """Remove handlers installed by setup_logging after the test."""
    yield
    logging_config.setup_logging(to_stderr=False, capture_warnings=False)
    logging_config.pop_context()
    logging.getLogger().setLevel(logging.WARNING)


# ============================================================================
# COMPUTE
# ============================================================================

@pytest.mark.parametrize("height,parts", [(10, 3), (8, 8), (5, 16), (1, 4), (128, 7)])
def test_row_slices_cover_rows(height, parts):
    slices = compute.row_slices(height, parts)
    assert slices[0][0] == 0
    assert slices[-1][1] == height
    assert all(a[1] == b[0] for a, b in zip(slices, slices[1:]))
    sizes = [stop - start for start, stop in slices]
    assert min(sizes) >= 1
    assert max(sizes) - min(sizes) <= 1
    assert len(slices) == min(height, parts)


def test_row_slices_example():
    assert compute.row_slices(10, 3) == [(0, 4), (4, 7), (7, 10)]
    assert compute.row_slices(0, 3) == []


def test_to_uint8():
    out = compute.to_uint8(np.array([-0.5, 0.0, 0.5, 1.0, 7.0, np.nan]))
    np.testing.assert_array_equal(out, [0, 0, 128, 255, 255, 0])
    assert out.dtype == np.uint8


def test_assert_finite():
    compute.assert_finite(np.ones(3))
    with pytest.raises(ValueError, match="1 NaNs, 1 Infs"):
        compute.assert_finite(np.array([np.nan, np.inf, 0.0]), "buffer")


# ============================================================================
# HASHING
# ============================================================================

def test_sha256_array_sensitivity():
    a = np.zeros((4, 4), dtype=np.float32)
    assert hashing.sha256_array(a) == hashing.sha256_array(a.copy())
    assert hashing.sha256_array(a) != hashing.sha256_array(a.reshape(16))
    assert hashing.sha256_array(a) != hashing.sha256_array(a.astype(np.float64))
    b = a.copy()
    b[2, 3] = 1e-7
    assert hashing.sha256_array(a) != hashing.sha256_array(b)


def test_sha256_array_non_contiguous():
    a = np.arange(16, dtype=np.float32).reshape(4, 4)
    assert hashing.sha256_array(a.T) == hashing.sha256_array(np.ascontiguousarray(a.T))


def test_hash_dict_key_order():
    assert hashing.hash_dict({"a": 1, "b": [1, 2]}) == hashing.hash_dict({"b": [1, 2], "a": 1})
    assert len(hashing.sha256_string("texture")) == 64


# ============================================================================
# PROFILER
# ============================================================================

def test_timer_sink():
    calls = []
    with profiler.timer("pass", sink=lambda name, s: calls.append((name, s))):
        pass
    assert len(calls) == 1
    assert calls[0][0] == "pass"
    assert calls[0][1] >= 0.0


def test_timer_prints_without_sink(capsys):
    with profiler.timer("blur"):
        pass
    assert capsys.readouterr().out.startswith("blur: ")


def test_timer_accumulator():
    acc = profiler.TimerAccumulator("grain")
    assert acc.mean() == 0.0
    acc.add(0.5)
    with acc.measure():
        pass
    assert acc.count == 2
    assert acc.total_time >= 0.5
    assert "grain" in repr(acc)
    acc.reset()
    assert acc.count == 0


# ============================================================================
# FS
# ============================================================================

def test_load_yaml(tmp_path):
    path = tmp_path / "a.yaml"
    path.write_text("width: 8\nlayers: []\n", encoding="utf-8")
    assert fs.load_yaml(path) == {"width": 8, "layers": []}


def test_load_yaml_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")
    bad = tmp_path / "bad.yaml"
    bad.write_text("a: [1, 2\n", encoding="utf-8")
    import yaml
    with pytest.raises(yaml.YAMLError):
        fs.load_yaml(bad)


def test_ensure_dir(tmp_path):
    p = fs.ensure_dir(tmp_path / "x" / "y")
    assert p.is_dir()
    assert fs.ensure_dir(p) == p


# ============================================================================
# LOGGING
# ============================================================================

def test_setup_logging_idempotent(reset_logging):
    first = logging_config.setup_logging("DEBUG", capture_warnings=False)
    second = logging_config.setup_logging("DEBUG", capture_warnings=False)
    root = logging.getLogger()
    assert len(first) == len(second) == 1
    assert first[0] not in root.handlers
    assert second[0] in root.handlers


def test_setup_logging_unknown_level(reset_logging):
    with pytest.raises(ValueError):
        logging_config.setup_logging("LOUD")


def test_json_file_with_context(tmp_path, reset_logging):
    log_file = tmp_path / "logs" / "render.jsonl"
    logging_config.setup_logging(
        "INFO", str(log_file), json=True, to_stderr=False, capture_warnings=False,
        context={"app": "texture-tool"},
    )
    logger = logging_config.get_logger("src.texture_engine.test")
    with logging_config.log_context(render="abc123"):
        logger.info("layer done")
    logger.info("after")

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert lines[0]["msg"] == "layer done"
    assert lines[0]["render"] == "abc123"
    assert lines[0]["app"] == "texture-tool"
    assert "render" not in lines[1]


def test_push_pop_context():
    logging_config.pop_context()
    logging_config.push_context(a=1, b=2)
    logging_config.pop_context(["a"])
    assert logging_config.current_context() == {"b": 2}
    logging_config.pop_context()
    assert logging_config.current_context() == {}


def test_human_format():
    logging_config.pop_context()
    formatter = logging_config.ContextFormatter("human", use_color=False)
    record = logging.makeLogRecord({"msg": "hello", "levelname": "INFO", "levelno": logging.INFO})
    with logging_config.log_context(layer=2):
        line = formatter.format(record)
    assert line.endswith("| layer=2 | hello")


def test_formatter_rejects_unknown_mode():
    with pytest.raises(ValueError):
        logging_config.ContextFormatter("xml")
