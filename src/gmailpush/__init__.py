"""Gmail push - incremental Gmail changes from Pub/Sub push notifications.

This package turns stateless Gmail push notifications into concrete, filtered
and parsed message changes, remembering per-account history ids and renewing
the Gmail watch on every cycle.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from gmailpush.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
