from __future__ import annotations

import asyncio
from typing import Any

import httpx

from packages.core.config import Settings
from packages.core.errors import DeliveryFailure
from packages.core.job_store import JobStore
from packages.core.logging import get_logger
from packages.core.schemas.attendance import AttendanceAction, AttendanceEvent, WebhookPayload
from packages.core.schemas.job import JobStatus
from packages.core.timestamps import utc_now_iso

logger = get_logger(__name__)

_PLACEHOLDER_RESPONSE = {"status": "success"}


def _delivery_log_extra(job_id: str, event: AttendanceEvent, status: JobStatus) -> dict[str, object]:
    """Structured logging payload shared by delivery outcomes."""

    return {
        "job_id": job_id,
        "action": str(event.action),
        "employee": event.name,
        "status": status,
    }


class Forwarder:
    """Posts attendance events to n8n and records the outcome on the job."""

    def __init__(
        self,
        store: JobStore,
        *,
        login_url: str,
        logout_url: str,
        timeout_seconds: float = 30.0,
        user_agent: str = "Employee-Tracker/1.0",
    ) -> None:
        self._store = store
        self._webhooks = {
            AttendanceAction.LOGIN: login_url,
            AttendanceAction.LOGOUT: logout_url,
        }
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    @classmethod
    def from_settings(cls, store: JobStore, settings: Settings) -> Forwarder:
        return cls(
            store,
            login_url=settings.n8n_login_webhook_url,
            logout_url=settings.n8n_logout_webhook_url,
            timeout_seconds=settings.webhook_timeout_seconds,
            user_agent=settings.webhook_user_agent,
        )

    def webhook_url_for(self, action: str) -> str:
        """Webhook for the action; anything unrecognised goes to the login hook."""

        return self._webhooks.get(action, self._webhooks[AttendanceAction.LOGIN])

    def build_payload(self, job_id: str, event: AttendanceEvent) -> WebhookPayload:
        return WebhookPayload(
            name=event.name.strip(),
            department=event.department,
            date=event.date,
            time=event.time,
            action=str(event.action),
            job_id=job_id,
            timestamp=utc_now_iso(),
        )

    async def deliver(self, job_id: str, event: AttendanceEvent) -> None:
        """Forward one event and mark the job success or failed.

        Runs as a detached task, so every failure ends up on the job record
        instead of propagating.
        """

        try:
            downstream = await self._post(job_id, event)
        except DeliveryFailure as exc:
            self._record_failure(job_id, event, str(exc))
            return
        except Exception as exc:
            logger.exception("unexpected n8n delivery error", extra=_delivery_log_extra(job_id, event, JobStatus.FAILED))
            self._record_failure(job_id, event, str(exc) or exc.__class__.__name__)
            return

        self._store.update(job_id, lambda record: record.mark_success(downstream))
        logger.info("n8n delivery succeeded", extra=_delivery_log_extra(job_id, event, JobStatus.SUCCESS))

    async def _post(self, job_id: str, event: AttendanceEvent) -> Any:
        webhook_url = self.webhook_url_for(event.action)
        payload = self.build_payload(job_id, event).model_dump(mode="json", by_alias=True)
        headers = {"Content-Type": "application/json", "User-Agent": self.user_agent}

        logger.debug(
            "sending to n8n",
            extra={**_delivery_log_extra(job_id, event, JobStatus.PROCESSING), "webhook_url": webhook_url},
        )

        try:
            async with asyncio.timeout(self.timeout_seconds):
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(webhook_url, json=payload, headers=headers)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise DeliveryFailure(f"n8n webhook timed out after {self.timeout_seconds:g}s") from exc
        except httpx.HTTPError as exc:
            reason = str(exc) or exc.__class__.__name__
            raise DeliveryFailure(f"n8n webhook request failed: {reason}") from exc

        if not response.is_success:
            raise DeliveryFailure(f"n8n webhook responded with status: {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            return dict(_PLACEHOLDER_RESPONSE)

        return body if body is not None else dict(_PLACEHOLDER_RESPONSE)

    def _record_failure(self, job_id: str, event: AttendanceEvent, error: str) -> None:
        self._store.update(job_id, lambda record: record.mark_failed(error))
        logger.error(
            "n8n delivery failed",
            extra={**_delivery_log_extra(job_id, event, JobStatus.FAILED), "error": error},
        )
