"""High-level entry points for processing Gmail push notifications."""

from .push_agent import GmailPushAgent

__all__ = ["GmailPushAgent"]
