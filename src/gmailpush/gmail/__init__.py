"""Gmail API access and message parsing."""
