"""Tests for the NotificationDispatcher: queue handoff, retries and isolation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from incident_pilot.notifications.dispatcher import NotificationDispatcher

SMTP_CONFIG = {"host": "smtp.example.com", "port": 587, "username": "u", "password": "p", "from_addr": "pilot@example.com"}

PAYLOAD = {
    "incident_id": "abc",
    "title": "Email server outage",
    "description": "The email server stopped accepting connections.",
    "category": "it",
    "severity": "high",
    "url": "http://pilot.test/incidents/abc",
    "recipients": ["a@example.com", "b@example.com"],
}


def _make_dispatcher(smtp_results=True, webhook_results=True, **kwargs):
    smtp = MagicMock()
    smtp.send = AsyncMock(side_effect=smtp_results if isinstance(smtp_results, list) else None,
                          return_value=smtp_results)
    webhook = MagicMock()
    webhook.send = AsyncMock(side_effect=webhook_results if isinstance(webhook_results, list) else None,
                             return_value=webhook_results)
    options = {
        "smtp_config": SMTP_CONFIG,
        "webhook_url": "https://hooks.example.com/team",
        "retry_backoff": 0,
        "smtp_sender": smtp,
        "webhook_sender": webhook,
    }
    options.update(kwargs)
    return NotificationDispatcher(**options), smtp, webhook


class TestEnqueue:

    def test_unknown_event_type_dropped(self):
        dispatcher, _, _ = _make_dispatcher()

        assert dispatcher.enqueue("incident_deleted", PAYLOAD) is False
        assert dispatcher.get_stats()["queue_size"] == 0

    def test_full_queue_drops_without_raising(self):
        dispatcher, _, _ = _make_dispatcher(queue_size=1)

        assert dispatcher.enqueue("incident_created", PAYLOAD) is True
        assert dispatcher.enqueue("incident_created", PAYLOAD) is False
        assert dispatcher.get_stats()["total_dropped"] == 1


class TestDeliver:

    @pytest.mark.asyncio
    async def test_sends_email_per_recipient_and_webhook(self):
        dispatcher, smtp, webhook = _make_dispatcher()

        ok = await dispatcher.deliver("incident_created", PAYLOAD)

        assert ok is True
        assert [c.args[3] for c in smtp.send.await_args_list] == ["a@example.com", "b@example.com"]
        subject = smtp.send.await_args_list[0].args[1]
        assert subject == "[Incident Pilot] New HIGH incident: Email server outage"
        webhook_payload = webhook.send.await_args.args[1]
        assert webhook_payload["event_type"] == "incident_created"

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        dispatcher, _, webhook = _make_dispatcher(
            smtp_config=None, webhook_results=[False, False, True], max_attempts=3
        )

        assert await dispatcher.deliver("incident_created", PAYLOAD) is True
        assert webhook.send.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        dispatcher, _, webhook = _make_dispatcher(smtp_config=None, webhook_results=False, max_attempts=2)

        assert await dispatcher.deliver("incident_created", PAYLOAD) is False
        assert webhook.send.await_count == 2
        assert dispatcher.get_stats()["total_failed"] == 1

    @pytest.mark.asyncio
    async def test_unconfigured_skips(self):
        dispatcher, smtp, webhook = _make_dispatcher(smtp_config=None, webhook_url=None)

        assert await dispatcher.deliver("incident_created", PAYLOAD) is False
        smtp.send.assert_not_awaited()
        webhook.send.assert_not_awaited()

    def test_assignment_email_content(self):
        payload = {**PAYLOAD, "event_type": "incident_assigned", "assignee_name": "Sam <Spec>"}

        subject = NotificationDispatcher._build_email_subject(payload)
        body = NotificationDispatcher._build_email_body(payload)

        assert subject == "[Incident Pilot] Incident assigned to you: Email server outage"
        assert "Sam &lt;Spec&gt;" in body
        assert "http://pilot.test/incidents/abc" in body


class TestWorker:

    @pytest.mark.asyncio
    async def test_worker_drains_queue(self):
        dispatcher, _, webhook = _make_dispatcher(smtp_config=None)
        await dispatcher.start()
        try:
            dispatcher.enqueue("incident_assigned", PAYLOAD)
            await asyncio.wait_for(dispatcher._queue.join(), timeout=2)
        finally:
            await dispatcher.stop()

        webhook.send.assert_awaited_once()
        assert dispatcher.get_stats()["total_delivered"] == 1

    @pytest.mark.asyncio
    async def test_worker_survives_sender_exception(self):
        dispatcher, _, webhook = _make_dispatcher(smtp_config=None, max_attempts=1)
        webhook.send = AsyncMock(side_effect=[RuntimeError("boom"), True])
        await dispatcher.start()
        try:
            dispatcher.enqueue("incident_created", PAYLOAD)
            dispatcher.enqueue("incident_created", PAYLOAD)
            await asyncio.wait_for(dispatcher._queue.join(), timeout=2)
        finally:
            await dispatcher.stop()

        assert webhook.send.await_count == 2
        stats = dispatcher.get_stats()
        assert stats["total_failed"] == 1
        assert stats["total_delivered"] == 1
