import asyncio
from typing import Any

import httpx
import pytest

from packages.core.config import Settings
from packages.core.forwarder import Forwarder
from packages.core.job_store import JobStore
from packages.core.schemas.attendance import AttendanceAction
from packages.core.schemas.job import JobStatus
from packages.core.timestamps import parse_timestamp
from tests.factories import LOGIN_URL, LOGOUT_URL, WebhookRecorder, make_event, make_record


def _forwarder(store: JobStore, **kwargs: Any) -> Forwarder:
    return Forwarder(store, login_url=LOGIN_URL, logout_url=LOGOUT_URL, **kwargs)


def _deliver(store: JobStore, forwarder: Forwarder, job_id: str = "job-1", **event_fields: Any) -> None:
    event = make_event(**event_fields)
    store.put(job_id, make_record(action=event.action, name=event.name))
    asyncio.run(forwarder.deliver(job_id, event))


def test_deliver_success_records_response(store: JobStore, webhook: WebhookRecorder) -> None:
    webhook.reply(200, json={"recorded": True, "row": 12})

    _deliver(store, _forwarder(store))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.SUCCESS
    assert record.downstream_response == {"recorded": True, "row": 12}
    assert record.error is None


def test_deliver_sends_trimmed_payload_with_headers(store: JobStore, webhook: WebhookRecorder) -> None:
    _deliver(store, _forwarder(store, user_agent="Employee-Tracker/1.0"), name="  Alice  ")

    assert len(webhook.calls) == 1
    call = webhook.calls[0]
    assert call["url"] == LOGIN_URL
    assert call["headers"] == {"Content-Type": "application/json", "User-Agent": "Employee-Tracker/1.0"}

    payload = call["json"]
    assert payload["name"] == "Alice"
    assert payload["department"] == "Eng"
    assert payload["date"] == "2024-01-01"
    assert payload["time"] == "09:00"
    assert payload["action"] == "login"
    assert payload["jobId"] == "job-1"
    assert parse_timestamp(payload["timestamp"]) > parse_timestamp("2024-01-01T09:00:00.000Z")


def test_deliver_applies_timeout_to_client(store: JobStore, webhook: WebhookRecorder) -> None:
    _deliver(store, _forwarder(store, timeout_seconds=12.5))

    assert webhook.client_kwargs == [{"timeout": 12.5}]


def test_deliver_logout_uses_logout_webhook(store: JobStore, webhook: WebhookRecorder) -> None:
    _deliver(store, _forwarder(store), action=AttendanceAction.LOGOUT)

    assert webhook.calls[0]["url"] == LOGOUT_URL
    assert webhook.calls[0]["json"]["action"] == "logout"


def test_unknown_action_falls_back_to_login_webhook(store: JobStore) -> None:
    forwarder = _forwarder(store)

    assert forwarder.webhook_url_for("logout") == LOGOUT_URL
    assert forwarder.webhook_url_for("lunch") == LOGIN_URL


def test_deliver_non_json_body_uses_placeholder(store: JobStore, webhook: WebhookRecorder) -> None:
    webhook.reply(200, content=b"Workflow was started")

    _deliver(store, _forwarder(store))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.SUCCESS
    assert record.downstream_response == {"status": "success"}


def test_deliver_json_null_body_uses_placeholder(store: JobStore, webhook: WebhookRecorder) -> None:
    webhook.reply(200, content=b"null", headers={"content-type": "application/json"})

    _deliver(store, _forwarder(store))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.SUCCESS
    assert record.downstream_response == {"status": "success"}
    assert record.error is None


@pytest.mark.parametrize("status_code", [404, 500, 503])
def test_deliver_error_status_marks_failed(store: JobStore, webhook: WebhookRecorder, status_code: int) -> None:
    webhook.reply(status_code, json={"message": "nope"})

    _deliver(store, _forwarder(store))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.FAILED
    assert record.error == f"n8n webhook responded with status: {status_code}"
    assert record.downstream_response is None


def test_deliver_network_error_marks_failed(store: JobStore, webhook: WebhookRecorder) -> None:
    webhook.fail(httpx.ConnectError("connection refused"))

    _deliver(store, _forwarder(store))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.FAILED
    assert record.error == "n8n webhook request failed: connection refused"


def test_deliver_httpx_timeout_marks_failed(store: JobStore, webhook: WebhookRecorder) -> None:
    webhook.fail(httpx.ReadTimeout("read timed out"))

    _deliver(store, _forwarder(store, timeout_seconds=30))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.FAILED
    assert record.error == "n8n webhook timed out after 30s"


def test_deliver_hung_webhook_is_cut_off(store: JobStore, webhook: WebhookRecorder) -> None:
    async def _hang(url: str) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(status_code=200, request=httpx.Request("POST", url))

    webhook.handler = _hang

    _deliver(store, _forwarder(store, timeout_seconds=0.05))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.FAILED
    assert record.error == "n8n webhook timed out after 0.05s"


def test_deliver_unexpected_error_is_contained(
    store: JobStore, webhook: WebhookRecorder, caplog: pytest.LogCaptureFixture
) -> None:
    webhook.fail(RuntimeError("kaboom"))

    with caplog.at_level("ERROR"):
        _deliver(store, _forwarder(store))

    record = store.get("job-1")
    assert record is not None
    assert record.status is JobStatus.FAILED
    assert record.error == "kaboom"
    assert any("unexpected n8n delivery error" in entry.message for entry in caplog.records)


def test_deliver_failure_logs(store: JobStore, webhook: WebhookRecorder, caplog: pytest.LogCaptureFixture) -> None:
    webhook.reply(500)

    with caplog.at_level("ERROR"):
        _deliver(store, _forwarder(store))

    failures = [entry for entry in caplog.records if entry.message == "n8n delivery failed"]
    assert len(failures) == 1
    assert failures[0].job_id == "job-1"
    assert failures[0].error == "n8n webhook responded with status: 500"


def test_deliver_for_evicted_job_is_noop(store: JobStore, webhook: WebhookRecorder) -> None:
    forwarder = _forwarder(store)

    asyncio.run(forwarder.deliver("gone", make_event()))

    assert len(webhook.calls) == 1
    assert store.get("gone") is None


def test_from_settings_reads_webhook_config(store: JobStore) -> None:
    settings = Settings(
        n8n_login_webhook_url="http://hooks.test/in",
        n8n_logout_webhook_url="http://hooks.test/out",
        webhook_timeout_seconds=5,
        webhook_user_agent="Tracker-Test/2.0",
    )

    forwarder = Forwarder.from_settings(store, settings)

    assert forwarder.webhook_url_for(AttendanceAction.LOGIN) == "http://hooks.test/in"
    assert forwarder.webhook_url_for(AttendanceAction.LOGOUT) == "http://hooks.test/out"
    assert forwarder.timeout_seconds == 5
    assert forwarder.user_agent == "Tracker-Test/2.0"
