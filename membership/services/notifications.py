"""Email notifications: mail senders and the fire-and-forget dispatcher."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Protocol

import httpx

from membership.core.config import get_settings
from membership.core.errors import NotificationError

if TYPE_CHECKING:
    from membership.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    """One templated email, ready to hand to a mail provider."""

    to: str
    subject: str
    html: str
    # Short tag for logs (e.g. "enrollment.confirmation"); never the body.
    kind: str = "generic"


class MailSender(Protocol):
    """Delivers one message or raises NotificationError."""

    name: str

    def send(self, message: EmailMessage) -> None: ...


class ResendMailSender:
    """Send email through the Resend HTTP API."""

    name = "resend"

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        if settings.RESEND_API_KEY is None:
            raise NotificationError("RESEND_API_KEY is not set.")
        self._api_key = settings.RESEND_API_KEY.get_secret_value()
        self._url = settings.RESEND_API_URL
        self._from = settings.MAIL_FROM
        self._timeout = settings.MAIL_REQUEST_TIMEOUT_SEC
        self._client = client or httpx.Client()

    def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self._from,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            resp = self._client.post(
                self._url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise NotificationError("Mail provider timed out.") from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Mail provider unreachable: {e!s}") from e
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message") or resp.text
            except ValueError:
                detail = resp.text
            raise NotificationError(
                f"Mail provider returned {resp.status_code}: {str(detail)[:200]}",
                status_code=resp.status_code,
            )
        try:
            provider_id = resp.json().get("id")
        except ValueError:
            provider_id = None
        logger.info(
            "Email sent",
            extra={"mail_kind": message.kind, "provider_id": provider_id},
        )

    def close(self) -> None:
        self._client.close()


class LogOnlyMailSender:
    """Used when no mail provider is configured: logs and drops the message."""

    name = "log-only"

    def send(self, message: EmailMessage) -> None:
        logger.warning(
            "Mail provider not configured; email not sent",
            extra={"mail_kind": message.kind, "subject": message.subject},
        )


class NotificationDispatcher:
    """
    Fire-and-forget delivery of EmailMessages.

    submit() hands the message to an executor and returns at once; the caller
    never waits on the provider and never sees its failures. Every failure
    ends in the log (the failure sink) and nowhere else.
    """

    def __init__(
        self,
        sender: MailSender,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        self.sender = sender
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notify"
        )

    def submit(self, message: EmailMessage) -> Future:
        return self._executor.submit(self._deliver, message)

    def _deliver(self, message: EmailMessage) -> bool:
        try:
            self.sender.send(message)
            return True
        except NotificationError as e:
            logger.error(
                "Notification failed",
                extra={"mail_kind": message.kind, "reason": e.message[:500]},
            )
        except Exception as e:
            logger.exception(
                "Notification failed unexpectedly",
                extra={"mail_kind": message.kind, "reason": str(e)[:500]},
            )
        return False

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        close = getattr(self.sender, "close", None)
        if callable(close):
            close()


def build_mail_sender(settings: Settings) -> MailSender:
    """Resend when an API key is configured, otherwise the log-only sender."""
    if settings.RESEND_API_KEY is None:
        return LogOnlyMailSender()
    return ResendMailSender(settings)


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher (FastAPI dependency; override in tests)."""
    settings = get_settings()
    return NotificationDispatcher(
        build_mail_sender(settings),
        max_workers=settings.NOTIFICATION_WORKERS,
    )
