"""Custom exceptions for Gmail push."""


class GmailPushError(Exception):
    """Base exception for all Gmail push errors."""


class GmailAPIError(GmailPushError):
    """Exception raised for Gmail API related errors."""


class MessageNotFoundError(GmailAPIError):
    """Exception raised when Gmail answers a message lookup with 404."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message not found: {message_id}")
        self.message_id = message_id


class ConfigurationError(GmailPushError):
    """Exception raised for configuration and option related errors."""


class AuthenticationError(GmailPushError):
    """Exception raised for authentication failures."""


class NotificationDecodeError(GmailPushError):
    """Exception raised when a push notification envelope cannot be decoded."""


class HistoryStoreError(GmailPushError):
    """Exception raised when the history id store cannot be read."""
