"""Background delivery backed by APScheduler.

Each delivery is a one-shot job. When an attempt fails the job consults
``retry_policy``: discarded failures stop immediately, Slack-supplied
``Retry-After`` delays are honoured, and everything else is retried with
polynomial backoff until ``max_attempts`` is reached.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
from apscheduler.schedulers.background import (
    BackgroundScheduler,  # type: ignore[import-untyped]
)
from apscheduler.triggers.date import DateTrigger  # type: ignore[import-untyped]

from ..config import Settings, get_settings
from ..delivery.error_handling import RetryAction, error_message, retry_policy
from ..delivery.executor import deliver
from ..registry import ProfileRegistry

logger = structlog.get_logger()

# How long after a missed run time a delivery is still attempted (seconds).
MISFIRE_GRACE_SECONDS = 60 * 60

DEFAULT_MAX_ATTEMPTS = 5


def default_backoff(attempt: int) -> int:
    """Seconds to wait before retrying after ``attempt`` failures."""
    return attempt**4 + 15


class DeliveryJobScheduler:
    """Runs deliveries in the background with retries."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        self.max_attempts = max_attempts
        self._scheduler = scheduler or BackgroundScheduler(
            job_defaults={"misfire_grace_time": MISFIRE_GRACE_SECONDS},
            timezone=timezone.utc,
        )

    # ── Lifecycle ─────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if self.running:
            return
        self._scheduler.start()
        logger.info("Slack delivery scheduler started", max_attempts=self.max_attempts)

    def stop(self, wait: bool = True) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("Slack delivery scheduler stopped")

    # ── Public API ────────────────────────────────────────────────

    def enqueue(self, profile_key: str, **kwargs: Any) -> str:
        """Schedule a delivery to run as soon as possible.

        Returns:
            The job ID.
        """
        return self._schedule(profile_key, kwargs, attempt=1, delay=0)

    # ── Job execution ─────────────────────────────────────────────

    def _schedule(
        self, profile_key: str, delivery_kwargs: Dict[str, Any], attempt: int, delay: int
    ) -> str:
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay)
        job = self._scheduler.add_job(
            self._perform,
            trigger=DateTrigger(run_date=run_date),
            kwargs={
                "profile_key": profile_key,
                "delivery_kwargs": delivery_kwargs,
                "attempt": attempt,
            },
            name=f"slack-delivery:{profile_key}",
        )
        logger.debug(
            "Slack delivery scheduled",
            job_id=job.id,
            profile=profile_key,
            attempt=attempt,
            delay_seconds=delay,
        )
        return str(job.id)

    def _perform(
        self, profile_key: str, delivery_kwargs: Dict[str, Any], attempt: int
    ) -> None:
        """Called by APScheduler when a delivery job fires."""
        try:
            profile = ProfileRegistry.find(profile_key)
            result = deliver(profile, **delivery_kwargs)
        except Exception as e:
            self._handle_failure(profile_key, delivery_kwargs, attempt, e)
            return

        logger.info(
            "Background Slack delivery completed",
            profile=profile_key,
            attempt=attempt,
            thread_ts=result.thread_ts,
        )

    def _handle_failure(
        self,
        profile_key: str,
        delivery_kwargs: Dict[str, Any],
        attempt: int,
        exc: BaseException,
    ) -> None:
        decision = retry_policy(attempt, exc)

        if decision.action is RetryAction.DISCARD:
            logger.warning(
                "Discarding Slack delivery",
                profile=profile_key,
                attempt=attempt,
                error=error_message(exc),
            )
            return

        if attempt >= self.max_attempts:
            logger.error(
                "Slack delivery retries exhausted",
                profile=profile_key,
                attempts=attempt,
                error=error_message(exc),
            )
            return

        if decision.action is RetryAction.DELAY and decision.seconds is not None:
            delay = decision.seconds
        else:
            delay = default_backoff(attempt)

        logger.info(
            "Retrying Slack delivery",
            profile=profile_key,
            attempt=attempt,
            delay_seconds=delay,
            error=error_message(exc),
        )
        self._schedule(profile_key, delivery_kwargs, attempt + 1, delay)


_backend: Optional[DeliveryJobScheduler] = None
_backend_lock = threading.Lock()


def get_backend(settings: Optional[Settings] = None) -> Optional[DeliveryJobScheduler]:
    """The process-wide backend for ``settings.async_backend``, started lazily."""
    global _backend
    settings = settings or get_settings()
    if settings.async_backend is None:
        return None
    with _backend_lock:
        if _backend is None:
            _backend = DeliveryJobScheduler(max_attempts=settings.async_max_attempts)
            _backend.start()
        return _backend


def set_backend(backend: Optional[DeliveryJobScheduler]) -> None:
    """Install a backend instance (or clear it with None)."""
    global _backend
    with _backend_lock:
        _backend = backend
