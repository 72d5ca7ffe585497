"""
Outbound notifications.

Workflow services call ``deliver()`` after their state change has been
committed. Delivery is best-effort: a failure is logged and reported back
as a warning string, never raised into the workflow.
"""

from typing import Any

import httpx

from journalflow.config import Settings, get_settings
from journalflow.errors import NotificationError
from journalflow.logging import get_logger

logger = get_logger(__name__)

TEMPLATES = {
    "reviewer_assigned": (
        "Peer Review Assignment: {title}",
        "You have been assigned to review \"{title}\".\n\nSign in at {site_url}/portal to get started.",
    ),
    "reviewer_invited": (
        "Peer Review Invitation: {title}",
        "You've been invited to review a paper.\n\n{title}\n\n{abstract}\n\n"
        "Sign in with your email at {site_url}/portal to access the review portal.",
    ),
    "review_submitted": (
        "New review received: {title}",
        "A reviewer has submitted a review of \"{title}\" with recommendation {recommendation}.",
    ),
    "revision_submitted": (
        "Revision {version_number} submitted: {title}",
        "Version {version_number} of \"{title}\" is ready for review at {site_url}/portal.",
    ),
    "revision_status_changed": (
        "Revision update: {title}",
        "Version {version_number} of \"{title}\" is now {status}.",
    ),
}


class _Defaults(dict):
    def __missing__(self, key):
        return ""


def render(template_kind: str, context: dict[str, Any], site_url: str = "") -> tuple[str, str]:
    try:
        subject, body = TEMPLATES[template_kind]
    except KeyError:
        raise NotificationError(f"Unknown notification template: {template_kind}") from None
    values = _Defaults(context)
    values.setdefault("site_url", site_url)
    return subject.format_map(values), body.format_map(values)


class Notifier:
    def notify(self, recipient_email: str, template_kind: str, context: dict[str, Any]) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes the notification to the log instead of sending it."""

    def notify(self, recipient_email, template_kind, context):
        subject, _ = render(template_kind, context)
        logger.info("notification", recipient=recipient_email, template_kind=template_kind, subject=subject)


class MailgunNotifier(Notifier):
    def __init__(
        self,
        api_key: str,
        domain: str,
        from_email: str,
        base_url: str = "https://api.mailgun.net/v3",
        site_url: str = "",
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.domain = domain
        self.from_email = from_email
        self.base_url = base_url.rstrip("/")
        self.site_url = site_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def notify(self, recipient_email, template_kind, context):
        subject, text = render(template_kind, context, site_url=self.site_url)
        try:
            response = self.client.post(
                f"{self.base_url}/{self.domain}/messages",
                auth=("api", self.api_key),
                data={
                    "from": self.from_email,
                    "to": recipient_email,
                    "subject": subject,
                    "text": text,
                },
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NotificationError(
                f"Mail delivery failed: {exc}",
                recipient=recipient_email,
                template_kind=template_kind,
            ) from exc
        logger.info("notification_sent", recipient=recipient_email, template_kind=template_kind)


def get_notifier(settings: Settings | None = None) -> Notifier:
    settings = settings or get_settings()
    if settings.MAILGUN_API_KEY and settings.MAILGUN_DOMAIN:
        return MailgunNotifier(
            api_key=settings.MAILGUN_API_KEY,
            domain=settings.MAILGUN_DOMAIN,
            from_email=settings.MAILGUN_FROM_EMAIL,
            base_url=settings.MAILGUN_BASE_URL,
            site_url=settings.SITE_URL,
            timeout=settings.MAIL_TIMEOUT_SECONDS,
        )
    return LogNotifier()


def deliver(notifier: Notifier, recipient_email: str, template_kind: str, context: dict[str, Any]) -> str | None:
    """Send one notification; return a warning message instead of raising on failure."""
    try:
        notifier.notify(recipient_email, template_kind, context)
    except NotificationError as exc:
        logger.warning(
            "notification_failed",
            recipient=recipient_email,
            template_kind=template_kind,
            error=exc.message,
        )
        return f"Notification to {recipient_email} failed: {exc.message}"
    return None
