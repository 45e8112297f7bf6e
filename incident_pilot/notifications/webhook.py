"""Webhook notification sender: generic JSON, Slack and Discord formats."""

import httpx

from ..utils.logging import get_logger

logger = get_logger("notifications.webhook")

_SEVERITY_LABELS = {
    "critical": "CRITICAL",
    "high": "HIGH",
    "medium": "MEDIUM",
    "low": "LOW",
}


class WebhookSender:
    """Posts incident events to a team webhook.

    Slack and Discord URLs get their platform message shape; anything else
    receives the raw payload with a summary ``text`` field.
    """

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    async def send(self, url: str, payload: dict, headers: dict | None = None) -> bool:
        """POST ``payload`` to ``url``. Returns True on a 2xx response."""
        send_headers = {"Content-Type": "application/json"}
        if headers:
            send_headers.update(headers)

        body = self._format_payload(url, payload)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=body, headers=send_headers)
                response.raise_for_status()
                logger.info("webhook_sent", url=url, status=response.status_code)
                return True
        except httpx.HTTPStatusError as exc:
            logger.error(
                "webhook_http_error",
                url=url,
                status=exc.response.status_code,
                body=exc.response.text[:500],
            )
            return False
        except Exception as exc:
            logger.error("webhook_send_error", url=url, error=str(exc))
            return False

    def _format_payload(self, url: str, payload: dict) -> dict:
        message = self._build_message_text(payload)

        if "hooks.slack.com" in url:
            return {"text": message}
        if "discord.com" in url:
            return {"content": message}

        # recipients are email addresses; keep them off third-party endpoints
        public = {k: v for k, v in payload.items() if k != "recipients"}
        return {"text": message, **public}

    def _build_message_text(self, payload: dict) -> str:
        event_type = payload.get("event_type", "notification")
        severity = _SEVERITY_LABELS.get(payload.get("severity", ""), "INFO")
        title = payload.get("title", "Incident")

        if event_type == "incident_assigned":
            headline = f"[Incident Pilot] {severity}: {title} assigned to {payload.get('assignee_name', 'a specialist')}"
        else:
            headline = f"[Incident Pilot] {severity}: new incident {title}"

        parts = [headline]
        if payload.get("category"):
            parts.append(f"Category: {payload['category'].upper()}")
        if payload.get("reported_by_name"):
            parts.append(f"Reported by: {payload['reported_by_name']}")
        if payload.get("url"):
            parts.append(payload["url"])
        return "\n".join(parts)
