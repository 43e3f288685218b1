"""Mailgun email sender adapter - Implements EmailSender protocol over httpx."""

import logging

import httpx

logger = logging.getLogger(__name__)


class MailgunEmailSender:
    """
    Sends plain-text email through the Mailgun HTTP API.

    Raises httpx.HTTPError on transport failure or a non-2xx response;
    callers decide whether delivery failure matters.
    """

    def __init__(
        self,
        api_key: str,
        domain: str,
        from_email: str,
        from_name: str = "WorkDeck",
        base_url: str = "https://api.mailgun.net",
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._domain = domain.strip().lower()
        self._from = f"{from_name} <{from_email}>"
        self._url = f"{base_url.rstrip('/')}/v3/{self._domain}/messages"
        self._client = client or httpx.Client(timeout=10.0)

    def send(self, email: str, subject: str, body: str) -> None:
        data = {"from": self._from, "to": email, "subject": subject, "text": body}
        response = self._client.post(self._url, auth=("api", self._api_key), data=data)
        response.raise_for_status()
        logger.info("[Mailgun] Sent to=%s status=%s", email, response.status_code)

    def close(self) -> None:
        self._client.close()
