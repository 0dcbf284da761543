"""Tests for the APScheduler delivery backend."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from apscheduler.triggers.date import DateTrigger
from structlog.testing import capture_logs

from slack_sender.registry import ProfileRegistry
from slack_sender.scheduler.backend import (
    DeliveryJobScheduler,
    default_backoff,
    get_backend,
    set_backend,
)

THREAD_TS = "1234567890.123456"


@pytest.fixture
def aps() -> MagicMock:
    scheduler = MagicMock()
    scheduler.running = False
    scheduler.add_job.return_value.id = "job-1"
    return scheduler


@pytest.fixture
def backend(aps: MagicMock) -> DeliveryJobScheduler:
    return DeliveryJobScheduler(max_attempts=3, scheduler=aps)


@pytest.fixture
def registered(mock_client: MagicMock):
    profile = ProfileRegistry.register(
        "alerts", {"token": "xoxb-test", "channels": {"ops": "C_OPS"}}
    )
    profile._client = mock_client
    return profile


def test_default_backoff() -> None:
    assert [default_backoff(n) for n in (1, 2, 3)] == [16, 31, 96]


class TestLifecycle:
    def test_start_and_stop(self, backend: DeliveryJobScheduler, aps: MagicMock) -> None:
        backend.start()
        aps.start.assert_called_once_with()

        aps.running = True
        backend.start()
        aps.start.assert_called_once_with()

        backend.stop(wait=False)
        aps.shutdown.assert_called_once_with(wait=False)

    def test_stop_when_not_running(self, backend: DeliveryJobScheduler, aps: MagicMock) -> None:
        backend.stop()
        aps.shutdown.assert_not_called()


class TestEnqueue:
    """Scheduling jobs."""

    def test_enqueue_schedules_first_attempt(
        self, backend: DeliveryJobScheduler, aps: MagicMock
    ) -> None:
        job_id = backend.enqueue("alerts", channel="C123", text="hi")

        assert job_id == "job-1"
        call = aps.add_job.call_args
        assert call.args[0] == backend._perform
        assert isinstance(call.kwargs["trigger"], DateTrigger)
        assert call.kwargs["kwargs"] == {
            "profile_key": "alerts",
            "delivery_kwargs": {"channel": "C123", "text": "hi"},
            "attempt": 1,
        }
        assert call.kwargs["name"] == "slack-delivery:alerts"


class TestPerform:
    """Running jobs and reacting to failures."""

    def test_success(self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock) -> None:
        with capture_logs() as logs:
            backend._perform("alerts", {"channel": "ops", "validate_known_channel": True, "text": "hi"}, 1)

        mock_client.chat_postMessage.assert_called_once_with(channel="C_OPS", text="hi")
        completed = [log for log in logs if log["event"] == "Background Slack delivery completed"]
        assert completed[0]["thread_ts"] == THREAD_TS

    def test_invalid_arguments_discarded(
        self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock
    ) -> None:
        with patch.object(backend, "_schedule") as schedule, capture_logs() as logs:
            backend._perform(
                "alerts", {"channel": "nope", "validate_known_channel": True, "text": "hi"}, 1
            )

        schedule.assert_not_called()
        mock_client.chat_postMessage.assert_not_called()
        assert any(log["event"] == "Discarding Slack delivery" for log in logs)

    def test_missing_profile_discarded(self, backend: DeliveryJobScheduler) -> None:
        with patch.object(backend, "_schedule") as schedule:
            backend._perform("gone", {"channel": "C1", "text": "hi"}, 1)
        schedule.assert_not_called()

    def test_permanent_channel_error_discarded(
        self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock, slack_error
    ) -> None:
        mock_client.chat_postMessage.side_effect = slack_error("channel_not_found")
        with patch.object(backend, "_schedule") as schedule:
            backend._perform("alerts", {"channel": "C1", "text": "hi"}, 1)
        schedule.assert_not_called()

    def test_retry_after_honoured(
        self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock, slack_error
    ) -> None:
        mock_client.chat_postMessage.side_effect = slack_error(
            "ratelimited", headers={"Retry-After": "30"}, status_code=429
        )
        delivery_kwargs = {"channel": "C1", "text": "hi"}
        with patch.object(backend, "_schedule") as schedule:
            backend._perform("alerts", delivery_kwargs, 1)
        schedule.assert_called_once_with("alerts", delivery_kwargs, 2, 30)

    def test_backoff_for_api_errors(
        self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock, slack_error
    ) -> None:
        mock_client.chat_postMessage.side_effect = slack_error("internal_error")
        delivery_kwargs = {"channel": "C1", "text": "hi"}
        with patch.object(backend, "_schedule") as schedule:
            backend._perform("alerts", delivery_kwargs, 2)
        schedule.assert_called_once_with("alerts", delivery_kwargs, 3, default_backoff(2))

    def test_network_errors_retried(
        self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock
    ) -> None:
        mock_client.chat_postMessage.side_effect = ConnectionError("reset")
        with patch.object(backend, "_schedule") as schedule:
            backend._perform("alerts", {"channel": "C1", "text": "hi"}, 1)
        assert schedule.call_args.args[2] == 2

    def test_gives_up_after_max_attempts(
        self, backend: DeliveryJobScheduler, registered, mock_client: MagicMock, slack_error
    ) -> None:
        mock_client.chat_postMessage.side_effect = slack_error("internal_error")
        with patch.object(backend, "_schedule") as schedule, capture_logs() as logs:
            backend._perform("alerts", {"channel": "C1", "text": "hi"}, 3)

        schedule.assert_not_called()
        exhausted = [log for log in logs if log["event"] == "Slack delivery retries exhausted"]
        assert exhausted[0]["log_level"] == "error"
        assert exhausted[0]["attempts"] == 3


class TestGetBackend:
    """Process-wide backend selection."""

    def test_none_without_async_backend(self, settings_factory) -> None:
        assert get_backend(settings_factory()) is None

    def test_created_and_started_lazily(self, settings_factory) -> None:
        settings = settings_factory(async_backend="apscheduler", async_max_attempts=7)
        with patch("slack_sender.scheduler.backend.BackgroundScheduler") as factory:
            factory.return_value.running = False
            backend = get_backend(settings)
            assert get_backend(settings) is backend

        assert backend.max_attempts == 7
        factory.return_value.start.assert_called_once_with()

    def test_installed_backend_used(self, settings_factory) -> None:
        installed = MagicMock()
        set_backend(installed)
        assert get_backend(settings_factory(async_backend="apscheduler")) is installed

    def test_concurrent_callers_share_one_backend(self, settings_factory) -> None:
        settings = settings_factory(async_backend="apscheduler")
        barrier = threading.Barrier(8)
        results = []

        def call() -> None:
            barrier.wait()
            results.append(get_backend(settings))

        with patch("slack_sender.scheduler.backend.BackgroundScheduler") as factory:
            factory.return_value.running = False
            threads = [threading.Thread(target=call) for _ in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        factory.assert_called_once()
        assert len(results) == 8
        assert all(result is results[0] for result in results)
