"""Standalone intake service.

Run:
  python -m fraudintake.main
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

from .config import Config, load_config, validate_config
from .intake import (
    ChallengeVerifier,
    PreviewFetcher,
    SSRFGuard,
    SubmissionPipeline,
    SubmissionRateLimiter,
)
from .storage import Database
from .server import IntakeServer, ServerConfig
from .utils.urls import StorageUrlPolicy

logger = logging.getLogger(__name__)


def build_pipeline(config: Config, database: Database) -> SubmissionPipeline:
    """Construct the submission pipeline and its long-lived components once."""
    rate_limiter = SubmissionRateLimiter(
        window_seconds=config.submission_window_seconds,
        max_per_window=config.max_submissions_per_window,
        min_interval_seconds=config.min_submission_interval_seconds,
    )
    challenge_verifier = ChallengeVerifier(
        config.turnstile_secret_key,
        endpoint=config.turnstile_verify_endpoint,
        timeout=config.challenge_timeout,
    )
    preview_fetcher = None
    if config.preview_enabled:
        preview_fetcher = PreviewFetcher(
            SSRFGuard(),
            timeout=config.preview_fetch_timeout,
            max_content_length=config.max_preview_content_length,
            max_redirects=config.max_preview_redirects,
            user_agent=config.preview_user_agent,
            accept_language=config.preview_accept_language,
        )
    return SubmissionPipeline(
        store=database,
        rate_limiter=rate_limiter,
        challenge_verifier=challenge_verifier,
        preview_fetcher=preview_fetcher,
        storage_policy=StorageUrlPolicy(config.storage_project_url, config.screenshot_bucket),
        min_form_completion_ms=config.min_form_completion_ms,
        max_attachments=config.max_attachments,
    )


async def run_server() -> None:
    config = load_config()
    for problem in validate_config(config):
        logger.warning("Config: %s", problem)

    db = Database(config.database_path)
    await db.connect()

    server = IntakeServer(
        config=ServerConfig(enabled=True, host=config.host, port=config.port),
        database=db,
        pipeline=build_pipeline(config, db),
    )

    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loop does not support add_signal_handler.
            pass

    await server.start()
    try:
        await stop_event.wait()
    finally:
        await server.stop()
        await db.close()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
