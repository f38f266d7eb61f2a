"""
Tests for the command line interface.
"""

import csv
import logging

import pytest
from click.testing import CliRunner

from pprl.cli import cli
from pprl.config import reset_settings
from pprl.errors import ConfigurationError, EncodingRangeError


@pytest.fixture(autouse=True)
def toy_env(monkeypatch):
    monkeypatch.setenv("PPRL_TOY_HE", "1")
    monkeypatch.setenv("PPRL_HE_BACKEND", "toy")
    monkeypatch.setenv("PPRL_LOG_LEVEL", "WARNING")
    monkeypatch.delenv("PPRL_CHUNK_STORE_DIR", raising=False)
    reset_settings()
    logger = logging.getLogger("pprl")
    saved = (logger.level, list(logger.handlers), logger.propagate)
    yield
    logger.setLevel(saved[0])
    logger.handlers[:] = saved[1]
    logger.propagate = saved[2]
    reset_settings()


def test_train_writes_csv(tmp_path):
    result = CliRunner().invoke(
        cli,
        ["train", "-s", "3x3", "--trials", "1", "--episodes", "2", "--output-dir", str(tmp_path), "--show-table"],
    )
    assert result.exit_code == 0, result.output
    assert "Decrypted Qtable:" in result.output
    assert "MSE(shadow, decrypted)" in result.output

    with (tmp_path / "PPRL_average_success_rate_3x3.csv").open() as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Episode", "Average Success Rate"]
    assert len(rows) == 3
    assert (tmp_path / "PPRL_success_rate_3x3.csv").exists()


def test_train_rejects_unknown_size():
    result = CliRunner().invoke(cli, ["train", "-s", "9x9"])
    assert result.exit_code != 0


def test_config_lists_settings():
    result = CliRunner().invoke(cli, ["config"])
    assert result.exit_code == 0
    assert "HE_BACKEND=toy" in result.output
    assert "MAP_BOUND=30000" in result.output


class TestMapBoundSetting:
    def test_env_bound_reaches_codec(self, tmp_path, monkeypatch):
        # N=1 with coeff 1000 cannot hold any Q-value the first step produces
        monkeypatch.setenv("PPRL_MAP_BOUND", "1")
        result = CliRunner().invoke(
            cli, ["train", "-s", "3x3", "--trials", "1", "--episodes", "1", "--output-dir", str(tmp_path)]
        )
        assert isinstance(result.exception, EncodingRangeError)

    def test_env_bound_checked_against_plain_modulus(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PPRL_MAP_BOUND", "40000")
        result = CliRunner().invoke(
            cli, ["train", "-s", "3x3", "--trials", "1", "--episodes", "1", "--output-dir", str(tmp_path)]
        )
        assert isinstance(result.exception, ConfigurationError)

    def test_option_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PPRL_MAP_BOUND", "40000")
        result = CliRunner().invoke(
            cli,
            ["train", "-s", "3x3", "--trials", "1", "--episodes", "1", "--map-bound", "30000", "--output-dir", str(tmp_path)],
        )
        assert result.exit_code == 0, result.output
