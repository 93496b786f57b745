"""Runtime settings resolved from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from teamhub.core.logging import get_logger
from teamhub.domain.jobs import RetryPolicy

logger = get_logger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_ORIGINS = ["http://localhost:4200", "http://127.0.0.1:4200"]


def env_float(key: str, default: float, *, minimum: float | None = None) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
        if minimum is not None and value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %.2f.", key, raw, default)
        return default


def env_int(key: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
        if minimum is not None and value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %d.", key, raw, default)
        return default


def load_queue_policies(path: Path) -> dict[str, RetryPolicy]:
    """Read per-topic retry policies from a YAML mapping."""
    if not path.exists():
        logger.info("Queue config %s not found, using default retry policy", path)
        return {}
    with path.open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"queue config {path} must be a mapping of topic to policy")

    policies: dict[str, RetryPolicy] = {}
    for topic, options in raw.items():
        options = options or {}
        policies[str(topic)] = RetryPolicy(
            max_attempts=max(1, int(options.get("max_attempts", 3))),
            backoff_seconds=float(options.get("backoff_seconds", 1.0)),
            backoff_factor=float(options.get("backoff_factor", 2.0)),
        )
    return policies


@dataclass
class Settings:
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    log_level: str = "INFO"
    queue_policies: dict[str, RetryPolicy] = field(default_factory=dict)
    report_generation_delay: float = 0.0
    job_history_limit: int = 500

    @classmethod
    def from_env(cls) -> "Settings":
        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
        if not origins:
            origins = list(DEFAULT_ORIGINS)

        config_path = os.getenv("QUEUE_CONFIG_PATH")
        path = Path(config_path).expanduser() if config_path else CONFIG_DIR / "queues.yaml"

        return cls(
            cors_origins=origins,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            queue_policies=load_queue_policies(path),
            report_generation_delay=env_float("REPORT_GENERATION_DELAY", 0.0, minimum=0.0),
            job_history_limit=env_int("JOB_HISTORY_LIMIT", 500, minimum=1),
        )
