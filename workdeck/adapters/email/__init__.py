"""Email sender adapters."""

from workdeck.config.settings import Settings
from workdeck.domain.ports import EmailSender

from .background import BackgroundEmailSender
from .console import ConsoleEmailSender
from .mailgun import MailgunEmailSender


def build_email_sender(settings: Settings) -> EmailSender:
    """Mailgun when credentials are configured, console logging otherwise."""
    if settings.mailgun_enabled:
        return MailgunEmailSender(
            api_key=settings.mailgun_api_key,
            domain=settings.mailgun_domain,
            from_email=settings.mailgun_from_email,
            from_name=settings.mailgun_from_name,
            base_url=settings.mailgun_base_url,
        )
    return ConsoleEmailSender()


__all__ = [
    "BackgroundEmailSender",
    "ConsoleEmailSender",
    "MailgunEmailSender",
    "build_email_sender",
]
