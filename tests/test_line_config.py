"""
Tests for line_config.py
Run with: pytest tests/test_line_config.py -v
"""

from dataclasses import replace

import pytest

from valueline.core import line_config
from valueline.core.line_config import AggregatorConfig, LineSearchConfig


class TestLineSearchConfig:

    def test_defaults(self):
        cfg = LineSearchConfig.default()
        assert (cfg.min_probability, cfg.target_probability, cfg.max_probability) == (0.58, 0.60, 0.62)
        assert cfg.decay == 0.9
        assert cfg.weighted_share == 0.6
        assert cfg.min_sample_size == 3
        assert cfg.fields == ("corners", "yellowcards", "shots_total", "shots_on_target")
        assert cfg.confidence.high_min_sample == 8

    def test_frozen(self):
        cfg = LineSearchConfig.default()
        with pytest.raises(Exception):
            cfg.decay = 0.5

    @pytest.mark.parametrize("overrides", [
        {"min_probability": 0.63},
        {"target_probability": 0.7},
        {"max_probability": 1.0},
        {"decay": 0.0},
        {"weighted_share": 1.5},
        {"line_step": 0.0},
        {"fields": ("corners", "possession")},
    ])
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValueError):
            replace(LineSearchConfig.default(), **overrides)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("VALUELINE_TARGET_PROBABILITY", "0.65")
        monkeypatch.setenv("VALUELINE_MIN_PROBABILITY", "0.63")
        monkeypatch.setenv("VALUELINE_MAX_PROBABILITY", "0.67")
        monkeypatch.setenv("VALUELINE_FIELDS", "corners, redcards")
        monkeypatch.setenv("VALUELINE_HIGH_MAX_STD", "1.5")
        cfg = LineSearchConfig.from_env()
        assert cfg.target_probability == 0.65
        assert cfg.fields == ("corners", "redcards")
        assert cfg.confidence.high_max_std == 1.5
        assert cfg.decay == 0.9

    def test_dotenv_loaded_only_by_from_env(self, monkeypatch):
        calls = []
        monkeypatch.setattr(line_config, "load_dotenv", lambda: calls.append("load"))
        LineSearchConfig.default()
        AggregatorConfig()
        assert calls == []
        LineSearchConfig.from_env()
        AggregatorConfig.from_env()
        assert calls == ["load", "load"]

    def test_from_env_defaults(self, monkeypatch):
        for name in ("TARGET_PROBABILITY", "MIN_PROBABILITY", "MAX_PROBABILITY", "FIELDS", "DECAY"):
            monkeypatch.delenv(f"VALUELINE_{name}", raising=False)
        assert LineSearchConfig.from_env().fields == LineSearchConfig.default().fields


class TestAggregatorConfig:

    def test_defaults(self):
        cfg = AggregatorConfig()
        assert (cfg.detail_concurrency, cfg.view_concurrency) == (4, 3)

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            AggregatorConfig(detail_concurrency=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("VALUELINE_DETAIL_CONCURRENCY", "8")
        monkeypatch.delenv("VALUELINE_VIEW_CONCURRENCY", raising=False)
        cfg = AggregatorConfig.from_env()
        assert (cfg.detail_concurrency, cfg.view_concurrency) == (8, 3)
