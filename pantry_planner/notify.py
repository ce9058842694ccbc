"""
Slack incoming-webhook notifications for finished plans.
"""

import logging
from typing import Optional

import requests

from .errors import NotificationError

logger = logging.getLogger(__name__)


class SlackClient:
    """Posts messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def post_message(self, channel: str, message: str) -> None:
        """
        Send ``message`` to ``channel``.

        Raises:
            NotificationError: On transport failure or a non-200 response.
        """
        try:
            response = self._session.post(
                self.webhook_url,
                json={"channel": channel, "text": message},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NotificationError(f"failed to post message: {e}") from e

        if response.status_code != 200:
            raise NotificationError(
                f"failed to post message: {response.status_code} {response.reason}"
            )
        logger.debug("Posted message to %s", channel)
