"""Tests for configuration loading."""

import pytest

from fraudintake.config import DEFAULT_SCREENSHOT_BUCKET, Config, load_config, validate_config
from fraudintake.intake.rate_limiter import MAX_SUBMISSIONS_PER_WINDOW


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in (
        "TURNSTILE_SECRET_KEY",
        "SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_URL",
        "SUPABASE_REPORT_SCREENSHOT_BUCKET",
        "MAX_SUBMISSIONS_PER_WINDOW",
        "MIN_FORM_COMPLETION_MS",
        "PREVIEW_ENABLED",
        "INTAKE_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("fraudintake.config.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path / "config"))
    return tmp_path


def test_defaults(clean_env):
    config = load_config()
    assert config.turnstile_secret_key == ""
    assert config.screenshot_bucket == DEFAULT_SCREENSHOT_BUCKET
    assert config.max_submissions_per_window == MAX_SUBMISSIONS_PER_WINDOW
    assert config.preview_enabled is True
    assert config.data_dir.exists()
    assert config.database_path.name == "fraudintake.db"


def test_env_values(clean_env, monkeypatch):
    monkeypatch.setenv("TURNSTILE_SECRET_KEY", "secret")
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://abc.supabase.co")
    monkeypatch.setenv("SUPABASE_REPORT_SCREENSHOT_BUCKET", "  shots  ")
    monkeypatch.setenv("MAX_SUBMISSIONS_PER_WINDOW", "3")
    monkeypatch.setenv("PREVIEW_ENABLED", "false")
    monkeypatch.setenv("INTAKE_PORT", "9090")

    config = load_config()
    assert config.turnstile_secret_key == "secret"
    assert config.storage_project_url == "https://abc.supabase.co"
    assert config.screenshot_bucket == "shots"
    assert config.max_submissions_per_window == 3
    assert config.preview_enabled is False
    assert config.port == 9090
    assert validate_config(config) == []


def test_yaml_overrides_env(clean_env, monkeypatch):
    config_dir = clean_env / "config"
    config_dir.mkdir()
    (config_dir / "intake.yaml").write_text(
        "max_submissions_per_window: 2\nmin_form_completion_ms: 3000\npreview_fetch_timeout: 2.5\n"
        "max_attachments: not-a-number\n"
    )
    monkeypatch.setenv("MAX_SUBMISSIONS_PER_WINDOW", "9")

    config = load_config()
    assert config.max_submissions_per_window == 2
    assert config.min_form_completion_ms == 3000
    assert config.preview_fetch_timeout == 2.5
    assert config.max_attachments == 5


def test_malformed_yaml_is_ignored(clean_env):
    config_dir = clean_env / "config"
    config_dir.mkdir()
    (config_dir / "intake.yaml").write_text("- just\n- a list\n")
    assert load_config().max_submissions_per_window == MAX_SUBMISSIONS_PER_WINDOW


def test_validate_config_reports_problems(tmp_path):
    config = Config(data_dir=tmp_path, max_submissions_per_window=0)
    problems = validate_config(config)
    assert any("TURNSTILE_SECRET_KEY" in p for p in problems)
    assert any("SUPABASE_URL" in p for p in problems)
    assert any("MAX_SUBMISSIONS_PER_WINDOW" in p for p in problems)
