"""
Roomly Backend - Transactional Mail Service
============================================

What:  Sends verification, password-reset and email-change codes.
How:   POSTs to the Resend HTTP API with httpx. Transient failures (network
       errors, 429, 5xx) are retried by tenacity with exponential backoff
       plus random jitter. Without RESEND_API_KEY the message is logged
       instead, which keeps local development and tests offline.
Who:   Auth and user routes schedule `deliver()` as a FastAPI background task,
       so a mail outage never fails the HTTP request that triggered it.

Retry Strategy:
    attempt 1 → fail → wait ~initial
    attempt 2 → fail → wait ~2× initial (capped at RETRY_MAX_WAIT)
    attempt N → raise ExternalServiceError("resend")
"""

import logging
from dataclasses import dataclass
from html import escape
from typing import Optional, Tuple

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from roomly.config import settings
from roomly.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    to: str
    subject: str
    text: str
    html: str


# ── Templates ─────────────────────────────────────────────────────────────
def _greeting(name: Optional[str]) -> str:
    return f"Hi {name}," if name else "Hi,"


def _render(name: Optional[str], intro: str, code: str, outro: str) -> Tuple[str, str]:
    text = f"{_greeting(name)}\n\n{intro}\n\n    {code}\n\n{outro}\n\nThanks,\nThe Roomly Team\n"
    html = (
        f"<p>{escape(_greeting(name))}</p>"
        f"<p>{intro}</p>"
        f'<p style="font-size:24px;font-weight:bold;letter-spacing:2px">{escape(code)}</p>'
        f"<p>{outro}</p>"
        "<p>Thanks,<br>The Roomly Team</p>"
    )
    return text, html


def verification_email(to: str, name: Optional[str], code: str) -> MailMessage:
    text, html = _render(
        name,
        "Thanks for signing up for a Roomly account. Your verification code is:",
        code,
        "Enter it on the verification page to activate your account.",
    )
    return MailMessage(to=to, subject="Roomly - Email Verification", text=text, html=html)


def password_reset_email(to: str, name: Optional[str], code: str) -> MailMessage:
    text, html = _render(
        name,
        "We received a request to reset your Roomly password. Your reset code is:",
        code,
        "If you did not request a password reset you can ignore this email.",
    )
    return MailMessage(to=to, subject="Roomly - Reset Password", text=text, html=html)


def email_change_email(to: str, name: Optional[str], code: str) -> MailMessage:
    text, html = _render(
        name,
        "We received a request to change the email address on your Roomly account. "
        "Your confirmation code is:",
        code,
        "If you did not request this change, please secure your account.",
    )
    return MailMessage(to=to, subject="Roomly - Change Email", text=text, html=html)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class MailerService:
    """
    Thin Resend client.

    Args:
        api_key:   overrides settings.resend_api_key (tests)
        transport: httpx transport override, e.g. httpx.MockTransport in tests
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.resend_api_key if api_key is None else api_key
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, message: MailMessage) -> None:
        """
        Send one message.

        Raises:
            ExternalServiceError: Resend rejected the message or stayed
                unavailable after all retries
        """
        if not self.enabled:
            logger.info(
                "Mail delivery disabled; would send '%s' to %s:\n%s",
                message.subject, message.to, message.text,
            )
            return

        try:
            await self._post_with_retry(message)
        except httpx.HTTPStatusError as e:
            logger.error(
                "Resend rejected message to %s: HTTP %s %s",
                message.to, e.response.status_code, e.response.text,
            )
            raise ExternalServiceError(
                service="resend",
                message="Could not send email",
                context={"status_code": e.response.status_code},
            ) from e
        except httpx.TransportError as e:
            logger.error("Resend unreachable sending to %s: %s", message.to, e)
            raise ExternalServiceError(service="resend", message="Could not send email") from e

        logger.info("Sent '%s' to %s", message.subject, message.to)

    async def deliver(self, message: MailMessage) -> None:
        """Background-task entry point: failures are logged, never raised."""
        try:
            await self.send(message)
        except ExternalServiceError as e:
            logger.error("Email '%s' to %s was not delivered: %s", message.subject, message.to, e.message)

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_min_wait,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ) + wait_random(0, settings.retry_min_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, message: MailMessage) -> None:
        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=settings.mail_timeout,
        ) as client:
            response = await client.post(
                settings.resend_api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": settings.mail_sender,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                },
            )
            response.raise_for_status()


mailer_service = MailerService()
