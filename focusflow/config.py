"""
Central configuration for the FocusFlow focus-session service.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    identity_header: str = "X-Forwarded-Email"   # set by the fronting identity proxy
    app_url: str = "http://localhost:3000"       # used for links in escalation mail

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    database_file: str = "focusflow.db"

    # Overdue detection
    sweep_interval_s: int = 30               # 0 disables the server-side sweep
    score_trend_window: int = 12

    # Escalation mail (empty host or sender = not configured)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_start_tls: bool = True
    smtp_timeout_s: float = 10.0
    email_from: str = ""

    log_level: str = "INFO"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_file

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (FOCUSFLOW_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"FOCUSFLOW_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, _coerce(getattr(cfg, k), os.environ[env_key]))
        cfg.data_dir = Path(cfg.data_dir)
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        return cfg


def _coerce(current: Any, raw: str) -> Any:
    """Convert an env string to the type of the current value."""
    if isinstance(current, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(current, list):
        return [part.strip() for part in raw.split(",") if part.strip()]
    if isinstance(current, Path):
        return Path(raw)
    return type(current)(raw)


# Module-level singleton
config = Config.load()
