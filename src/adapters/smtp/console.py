"""
Console email sender adapter - Implements EmailSender protocol.

Writes email verification codes to the application log instead of
delivering them, for local development and demos.
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Your membership registration code"


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, subject: str = DEFAULT_SUBJECT) -> None:
        self.subject = subject

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Log the verification code (simulates email delivery).

        The code is logged at INFO level to be visible in container logs.

        Args:
            email: Recipient email address (normalized by domain layer)
            code: Numeric verification code
        """
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)
        logger.debug("Subject: %s", self.subject)
