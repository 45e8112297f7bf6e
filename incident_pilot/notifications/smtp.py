"""SMTP notification sender: HTML incident emails."""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..utils.logging import get_logger

logger = get_logger("notifications.smtp")

_EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
body {{ margin: 0; padding: 0; background-color: #f4f5f7; color: #1f2933; font-family: Arial, sans-serif; }}
.container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
.header {{ background-color: #1e3a8a; color: #ffffff; padding: 16px 20px; font-size: 18px; }}
.body-content {{ background-color: #ffffff; border: 1px solid #d9dde3; border-top: none; padding: 24px; line-height: 1.6; }}
.subject-line {{ font-size: 16px; font-weight: 600; margin-bottom: 16px; }}
.button {{ display: inline-block; margin-top: 16px; padding: 10px 18px; background-color: #1e3a8a; color: #ffffff; text-decoration: none; border-radius: 4px; }}
.footer {{ padding: 12px; text-align: center; font-size: 11px; color: #6b7280; }}
</style>
</head>
<body>
<div class="container">
    <div class="header">{app_name}</div>
    <div class="body-content">
        <div class="subject-line">{subject}</div>
        {body}
    </div>
    <div class="footer">Automated notification. Do not reply.</div>
</div>
</body>
</html>"""


class SMTPSender:
    """Sends HTML email over SMTP.

    smtplib is blocking, so the send runs in the default thread executor
    and is bounded by ``timeout``.
    """

    def __init__(self, app_name: str = "Incident Pilot", timeout: float = 10.0):
        self._app_name = app_name
        self._timeout = timeout

    async def send(self, config: dict, subject: str, body_html: str, to: str) -> bool:
        """Send one email.

        Args:
            config: SMTP settings with keys host, port, username, password, from_addr.
            subject: Email subject line.
            body_html: HTML fragment placed inside the template.
            to: Recipient address.

        Returns:
            True if the server accepted the message, False otherwise.
        """
        host = config.get("host", "")
        port = config.get("port", 587)
        username = config.get("username") or ""
        password = config.get("password") or ""
        from_addr = config.get("from_addr") or username

        if not host or not to:
            logger.error("smtp_missing_config", host=host, to=to)
            return False

        full_html = _EMAIL_TEMPLATE.format(app_name=self._app_name, subject=subject, body=body_html)

        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    self._send_sync,
                    host,
                    port,
                    username,
                    password,
                    from_addr,
                    to,
                    subject,
                    full_html,
                    self._timeout,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error("smtp_send_timeout", to=to, timeout=self._timeout)
            return False
        except Exception as exc:
            logger.error("smtp_send_error", to=to, error=str(exc))
            return False

        logger.info("smtp_email_sent", to=to, subject=subject)
        return True

    @staticmethod
    def _send_sync(
        host: str,
        port: int,
        username: str,
        password: str,
        from_addr: str,
        to: str,
        subject: str,
        html_body: str,
        timeout: float,
    ) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        with smtplib.SMTP(host, port, timeout=timeout) as server:
            server.ehlo()
            if port != 25:
                server.starttls()
                server.ehlo()
            if username and password:
                server.login(username, password)
            server.sendmail(from_addr, [to], msg.as_string())
