"""Unit tests for environment configuration."""
import pytest
from pydantic import ValidationError

from inbound_manager.config import CheckerConfig, ScoringConfig, load_checker_config, load_panel_config


def test_defaults_match_stock_scoring():
    scoring = ScoringConfig()
    assert (scoring.tls13_points, scoring.fast_latency_points, scoring.ok_latency_points) == (40, 30, 20)
    assert (scoring.modern_stack_points, scoring.premium_points) == (20, 10)
    assert (scoring.pass_score, scoring.good_score, scoring.excellent_score) == (50, 70, 90)
    assert (scoring.fast_latency_ms, scoring.ok_latency_ms) == (300, 1000)
    assert CheckerConfig().timeout == 12.0


def test_remote_timeout_falls_back_to_shared_timeout():
    assert CheckerConfig(timeout=5).effective_remote_timeout == 5
    assert CheckerConfig(timeout=5, remote_timeout=2).effective_remote_timeout == 2


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SCORE_TLS13", "50")
    monkeypatch.setenv("SCORE_PASS", "60")
    monkeypatch.setenv("CHECK_TIMEOUT", "3.5")
    config = load_checker_config(env_file=None)
    assert config.scoring.tls13_points == 50
    assert config.scoring.pass_score == 60
    assert config.scoring.premium_points == 10
    assert config.timeout == 3.5


def test_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("SCORE_PREMIUM", "ten")
    with pytest.raises(ValidationError):
        load_checker_config(env_file=None)


def test_panel_config(monkeypatch):
    monkeypatch.delenv("PANEL_BASE_URL", raising=False)
    with pytest.raises(ValueError):
        load_panel_config(env_file=None)
    monkeypatch.setenv("PANEL_BASE_URL", "https://panel.test/api")
    monkeypatch.setenv("PANEL_USERNAME", "admin")
    config = load_panel_config(env_file=None)
    assert config.base_url == "https://panel.test/api"
    assert config.username == "admin"
