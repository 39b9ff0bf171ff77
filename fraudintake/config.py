"""Configuration management for fraudintake."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .intake.challenge import TURNSTILE_VERIFY_ENDPOINT, VERIFY_TIMEOUT_SECONDS
from .intake.pipeline import MAX_ATTACHMENTS, MIN_FORM_COMPLETION_MS
from .intake.preview import (
    MAX_PREVIEW_CONTENT_LENGTH,
    MAX_REDIRECTS,
    PREVIEW_ACCEPT_LANGUAGE,
    PREVIEW_FETCH_TIMEOUT_SECONDS,
    PREVIEW_USER_AGENT,
)
from .intake.rate_limiter import (
    MAX_SUBMISSIONS_PER_WINDOW,
    MIN_SUBMISSION_INTERVAL_SECONDS,
    SUBMISSION_WINDOW_SECONDS,
)

logger = logging.getLogger(__name__)

DEFAULT_SCREENSHOT_BUCKET = "report-screenshots"

# Numeric tunables that config/intake.yaml may override.
TUNABLE_FIELDS: dict[str, type] = {
    "submission_window_seconds": int,
    "max_submissions_per_window": int,
    "min_submission_interval_seconds": int,
    "min_form_completion_ms": int,
    "max_attachments": int,
    "preview_fetch_timeout": float,
    "max_preview_content_length": int,
    "max_preview_redirects": int,
    "challenge_timeout": float,
}


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8080

    # Human verification (Turnstile)
    turnstile_secret_key: str = ""
    turnstile_verify_endpoint: str = TURNSTILE_VERIFY_ENDPOINT
    challenge_timeout: float = VERIFY_TIMEOUT_SECONDS

    # Object storage for screenshots (uploads happen elsewhere)
    storage_project_url: str = ""
    screenshot_bucket: str = DEFAULT_SCREENSHOT_BUCKET

    # Rate limiting
    submission_window_seconds: int = SUBMISSION_WINDOW_SECONDS
    max_submissions_per_window: int = MAX_SUBMISSIONS_PER_WINDOW
    min_submission_interval_seconds: int = MIN_SUBMISSION_INTERVAL_SECONDS
    min_form_completion_ms: int = MIN_FORM_COMPLETION_MS
    max_attachments: int = MAX_ATTACHMENTS

    # Link previews
    preview_enabled: bool = True
    preview_fetch_timeout: float = PREVIEW_FETCH_TIMEOUT_SECONDS
    max_preview_content_length: int = MAX_PREVIEW_CONTENT_LENGTH
    max_preview_redirects: int = MAX_REDIRECTS
    preview_user_agent: str = PREVIEW_USER_AGENT
    preview_accept_language: str = PREVIEW_ACCEPT_LANGUAGE

    # Paths
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.config_dir = Path(self.config_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self.data_dir / "fraudintake.db"


def _load_overrides(config_dir: Path) -> dict:
    """Load numeric overrides from config/intake.yaml (optional)."""
    path = Path(config_dir or ".") / "intake.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse intake.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring intake.yaml: expected a mapping")
        return {}

    overrides: dict[str, object] = {}
    for key, caster in TUNABLE_FIELDS.items():
        if key not in data:
            continue
        try:
            overrides[key] = caster(data[key])
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid intake.yaml value for %s: %r", key, data[key])
    return overrides


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def load_config() -> Config:
    """Load configuration from environment variables (then intake.yaml overrides)."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    overrides = _load_overrides(config_dir)

    values = dict(
        host=os.getenv("INTAKE_HOST", "127.0.0.1"),
        port=_env_int("INTAKE_PORT", 8080),
        turnstile_secret_key=os.getenv("TURNSTILE_SECRET_KEY", ""),
        turnstile_verify_endpoint=os.getenv("TURNSTILE_VERIFY_ENDPOINT", TURNSTILE_VERIFY_ENDPOINT),
        challenge_timeout=_env_float("CHALLENGE_TIMEOUT", VERIFY_TIMEOUT_SECONDS),
        storage_project_url=os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "",
        screenshot_bucket=(os.getenv("SUPABASE_REPORT_SCREENSHOT_BUCKET") or "").strip()
        or DEFAULT_SCREENSHOT_BUCKET,
        submission_window_seconds=_env_int("SUBMISSION_WINDOW_SECONDS", SUBMISSION_WINDOW_SECONDS),
        max_submissions_per_window=_env_int("MAX_SUBMISSIONS_PER_WINDOW", MAX_SUBMISSIONS_PER_WINDOW),
        min_submission_interval_seconds=_env_int(
            "MIN_SUBMISSION_INTERVAL_SECONDS", MIN_SUBMISSION_INTERVAL_SECONDS
        ),
        min_form_completion_ms=_env_int("MIN_FORM_COMPLETION_MS", MIN_FORM_COMPLETION_MS),
        max_attachments=_env_int("MAX_SCREENSHOT_COUNT", MAX_ATTACHMENTS),
        preview_enabled=os.getenv("PREVIEW_ENABLED", "true").lower() == "true",
        preview_fetch_timeout=_env_float("PREVIEW_FETCH_TIMEOUT", PREVIEW_FETCH_TIMEOUT_SECONDS),
        max_preview_content_length=_env_int("MAX_PREVIEW_CONTENT_LENGTH", MAX_PREVIEW_CONTENT_LENGTH),
        max_preview_redirects=_env_int("MAX_PREVIEW_REDIRECTS", MAX_REDIRECTS),
        preview_user_agent=os.getenv("PREVIEW_USER_AGENT", PREVIEW_USER_AGENT),
        preview_accept_language=os.getenv("PREVIEW_ACCEPT_LANGUAGE", PREVIEW_ACCEPT_LANGUAGE),
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        config_dir=config_dir,
    )
    values.update(overrides)
    return Config(**values)


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if not (config.turnstile_secret_key or "").strip():
        errors.append("TURNSTILE_SECRET_KEY is not set; every submission will be rejected with 503")
    if not (config.storage_project_url or "").strip():
        errors.append("SUPABASE_URL is not set; submissions with screenshots will be rejected")
    if config.max_submissions_per_window < 1:
        errors.append("MAX_SUBMISSIONS_PER_WINDOW must be at least 1")
    if config.preview_fetch_timeout <= 0:
        errors.append("PREVIEW_FETCH_TIMEOUT must be positive")
    return errors
