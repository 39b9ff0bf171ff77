"""Tests for component wiring in the entry point."""

import pytest

from fraudintake.config import Config
from fraudintake.main import build_pipeline
from fraudintake.storage.database import Database


@pytest.fixture
def config(tmp_path):
    return Config(
        turnstile_secret_key="secret",
        storage_project_url="https://abc.supabase.co",
        max_submissions_per_window=3,
        min_form_completion_ms=2500,
        preview_fetch_timeout=1.5,
        data_dir=tmp_path,
    )


def test_build_pipeline_applies_config(config):
    pipeline = build_pipeline(config, Database(config.database_path))

    assert pipeline.rate_limiter.max_per_window == 3
    assert pipeline.min_form_completion_ms == 2500
    assert pipeline.challenge_verifier.configured is True
    assert pipeline.preview_fetcher is not None
    assert pipeline.preview_fetcher.timeout == 1.5
    assert pipeline.storage_policy.origin == "https://abc.supabase.co"


def test_build_pipeline_without_previews(config):
    config.preview_enabled = False
    pipeline = build_pipeline(config, Database(config.database_path))
    assert pipeline.preview_fetcher is None
