"""Notification dispatcher: queued, retried delivery of incident events.

Operations hand events over with ``enqueue``, which never blocks and never
raises. A single worker task drains the queue and delivers each event to
its email recipients and to the team webhook, retrying each channel with a
linear backoff. Delivery failures end in a log line, not an exception.
"""

import asyncio
from html import escape
from typing import Optional

from ..utils.logging import get_logger
from .smtp import SMTPSender
from .webhook import WebhookSender

logger = get_logger("notifications.dispatcher")

SUPPORTED_EVENT_TYPES = {
    "incident_created",
    "incident_assigned",
}

_SEVERITY_COLORS = {
    "critical": "#dc2626",
    "high": "#ea580c",
    "medium": "#eab308",
    "low": "#16a34a",
}


class NotificationDispatcher:
    """Routes incident events to SMTP recipients and an optional webhook."""

    def __init__(
        self,
        smtp_config: Optional[dict] = None,
        webhook_url: Optional[str] = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_backoff: float = 2.0,
        queue_size: int = 1000,
        smtp_sender: Optional[SMTPSender] = None,
        webhook_sender: Optional[WebhookSender] = None,
    ) -> None:
        self._smtp_config = smtp_config if smtp_config and smtp_config.get("host") else None
        self._webhook_url = webhook_url
        self._max_attempts = max(1, max_attempts)
        self._retry_backoff = retry_backoff
        self._smtp_sender = smtp_sender or SMTPSender(timeout=timeout)
        self._webhook_sender = webhook_sender or WebhookSender(timeout=timeout)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._running = False
        self._worker_task: asyncio.Task | None = None
        self._total_enqueued = 0
        self._total_delivered = 0
        self._total_failed = 0
        self._total_dropped = 0

    @property
    def configured(self) -> bool:
        return self._smtp_config is not None or bool(self._webhook_url)

    def enqueue(self, event_type: str, payload: dict) -> bool:
        """Queue an event for delivery. Returns False if it was dropped."""
        if event_type not in SUPPORTED_EVENT_TYPES:
            logger.warning("notification_unknown_event_type", event_type=event_type)
            return False
        try:
            self._queue.put_nowait({"event_type": event_type, **payload})
        except asyncio.QueueFull:
            self._total_dropped += 1
            logger.warning("notification_queue_full", event_type=event_type)
            return False
        self._total_enqueued += 1
        return True

    async def start(self) -> None:
        self._running = True
        self._worker_task = asyncio.create_task(self._worker_loop())
        logger.info("notification_dispatcher_started", configured=self.configured)

    async def stop(self) -> None:
        self._running = False
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None
        logger.info(
            "notification_dispatcher_stopped",
            delivered=self._total_delivered,
            failed=self._total_failed,
            pending=self._queue.qsize(),
        )

    async def _worker_loop(self) -> None:
        while self._running:
            try:
                payload = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            try:
                await self.deliver(payload["event_type"], payload)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("notification_worker_error", error=str(e))
            finally:
                self._queue.task_done()

    async def deliver(self, event_type: str, payload: dict) -> bool:
        """Deliver one event to every channel. True only if all channels succeeded."""
        payload = {**payload, "event_type": event_type}
        if not self.configured:
            logger.info(
                "notification_skipped_unconfigured",
                event_type=event_type,
                incident_id=payload.get("incident_id"),
            )
            return False

        results = []
        if self._smtp_config:
            subject = self._build_email_subject(payload)
            body_html = self._build_email_body(payload)
            for to in payload.get("recipients") or []:
                results.append(await self._with_retry(
                    "smtp",
                    lambda to=to: self._smtp_sender.send(self._smtp_config, subject, body_html, to),
                    event_type,
                ))
        if self._webhook_url:
            results.append(await self._with_retry(
                "webhook",
                lambda: self._webhook_sender.send(self._webhook_url, payload),
                event_type,
            ))

        ok = all(results)
        if ok:
            self._total_delivered += 1
        else:
            self._total_failed += 1
        logger.info(
            "notification_delivered" if ok else "notification_partially_failed",
            event_type=event_type,
            incident_id=payload.get("incident_id"),
            channels=len(results),
        )
        return ok

    async def _with_retry(self, channel: str, send, event_type: str) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            try:
                if await send():
                    return True
            except Exception as exc:
                logger.error("notification_send_error", channel=channel, attempt=attempt, error=str(exc))
            if attempt < self._max_attempts:
                logger.warning(
                    "notification_retry",
                    channel=channel,
                    event_type=event_type,
                    attempt=attempt,
                )
                await asyncio.sleep(self._retry_backoff * attempt)
        logger.error(
            "notification_failed",
            channel=channel,
            event_type=event_type,
            attempts=self._max_attempts,
        )
        return False

    @staticmethod
    def _build_email_subject(payload: dict) -> str:
        severity = payload.get("severity", "").upper()
        title = payload.get("title", "Incident")
        if payload.get("event_type") == "incident_assigned":
            return f"[Incident Pilot] Incident assigned to you: {title}"
        return f"[Incident Pilot] New {severity} incident: {title}"

    @staticmethod
    def _build_email_body(payload: dict) -> str:
        parts = []
        severity = payload.get("severity", "")
        color = _SEVERITY_COLORS.get(severity, "#6b7280")

        if payload.get("event_type") == "incident_assigned":
            parts.append(
                f"<p>{escape(payload.get('assignee_name', ''))}, "
                "a new incident has been assigned to you.</p>"
            )
        else:
            parts.append("<p>A new incident has been reported.</p>")

        rows = [
            ("Title", escape(payload.get("title", ""))),
            ("Category", escape(payload.get("category", "").upper())),
            ("Severity", f"<span style='color: {color}; font-weight: bold;'>{escape(severity.upper())}</span>"),
        ]
        if payload.get("reported_by_name"):
            rows.append(("Reported by", escape(payload["reported_by_name"])))
        parts.append(
            "<table style='border-collapse: collapse;'>"
            + "".join(
                f"<tr><td style='color: #6b7280; padding: 4px 12px 4px 0;'>{label}</td><td>{value}</td></tr>"
                for label, value in rows
            )
            + "</table>"
        )
        if payload.get("url"):
            parts.append(f"<a class='button' href='{escape(payload['url'])}'>View incident</a>")
        return "\n".join(parts)

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "configured": self.configured,
            "total_enqueued": self._total_enqueued,
            "total_delivered": self._total_delivered,
            "total_failed": self._total_failed,
            "total_dropped": self._total_dropped,
            "queue_size": self._queue.qsize(),
        }
