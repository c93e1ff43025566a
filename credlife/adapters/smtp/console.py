"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outbound messages for demo purposes.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints messages to stdout.
    """

    def send_message(self, to_address: str, subject: str, body: str) -> None:
        """
        Log the message to console (simulates email delivery).

        In production, this would be replaced with an SMTP adapter.
        The message is logged at INFO level to be visible in docker-compose logs.

        Args:
            to_address: Recipient email address (normalized by domain layer)
            subject: Message subject line
            body: Plain-text message body
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to_address, subject, body)
