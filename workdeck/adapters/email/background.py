"""Fire-and-forget email delivery on a thread pool."""

import logging
from concurrent.futures import Executor, Future
from functools import partial

from workdeck.domain.ports import EmailSender

logger = logging.getLogger(__name__)


def _log_delivery_failure(email: str, future: Future) -> None:
    if future.cancelled():
        logger.warning("Email delivery to %s was cancelled", email)
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Email delivery to %s failed: %s", email, exc)


class BackgroundEmailSender:
    """
    Wraps an EmailSender so send() returns immediately.

    Delivery runs on the executor; failures are logged and never reach the
    caller.
    """

    def __init__(self, sender: EmailSender, executor: Executor) -> None:
        self._sender = sender
        self._executor = executor

    def send(self, email: str, subject: str, body: str) -> None:
        future = self._executor.submit(self._sender.send, email, subject, body)
        future.add_done_callback(partial(_log_delivery_failure, email))
