"""
Tests for configuration defaults and FOCUSFLOW_* environment overrides.
"""

from pathlib import Path

import pytest

from focusflow.config import Config, _coerce


def test_defaults(tmp_path):
    cfg = Config(data_dir=tmp_path)
    assert cfg.api_port == 8765
    assert cfg.identity_header == "X-Forwarded-Email"
    assert cfg.database_path == tmp_path / "focusflow.db"
    assert cfg.smtp_host == ""


@pytest.mark.parametrize(
    "current, raw, expected",
    [
        (True, "off", False),
        (False, "Yes", True),
        (8765, "9000", 9000),
        (10.0, "2.5", 2.5),
        (["x"], "a, b,,c", ["a", "b", "c"]),
        ("", "smtp.example.com", "smtp.example.com"),
    ],
)
def test_coerce(current, raw, expected):
    assert _coerce(current, raw) == expected


def test_coerce_path():
    assert _coerce(Path("/tmp"), "/srv/focus") == Path("/srv/focus")


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("FOCUSFLOW_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("FOCUSFLOW_API_PORT", "9100")
    monkeypatch.setenv("FOCUSFLOW_SMTP_START_TLS", "false")
    monkeypatch.setenv("FOCUSFLOW_SWEEP_INTERVAL_S", "0")
    monkeypatch.setenv("FOCUSFLOW_CORS_ORIGINS", "https://a.example, https://b.example")

    cfg = Config.load()

    assert cfg.data_dir == tmp_path / "data"
    assert cfg.data_dir.is_dir()
    assert cfg.api_port == 9100
    assert cfg.smtp_start_tls is False
    assert cfg.sweep_interval_s == 0
    assert cfg.cors_origins == ["https://a.example", "https://b.example"]
