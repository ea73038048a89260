"""streamhub — in-memory real-time event delivery hub.

Keeps track of many long-lived client streams and lets any producer push
events to all of them, or to a targeted subset, without a slow consumer
holding anyone else up.
"""

__version__ = "0.1.0"
