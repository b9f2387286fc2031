"""RTM error hierarchy.

Startup errors (handshake, connect) are fatal; steady-state errors
(receive, send) are logged and the dispatch loop keeps going.
"""

from typing import Optional


# ════════════════════════════════════════════════════════
# RTM Exception Hierarchy — classify failures by phase,
# not by string matching.  main.py and dispatch.py catch these.
# ════════════════════════════════════════════════════════

class RTMError(Exception):
    """Base class for all RTM session errors."""

    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        super().__init__(reason)
        self.reason = reason
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.reason}, {self.cause}"
        return self.reason

class HandshakeError(RTMError):
    """rtm.start failed or reported ok=false."""
    pass

class StreamConnectionError(RTMError):
    """WebSocket upgrade to the streaming URL failed."""
    pass

class ReceiveError(RTMError):
    """One inbound frame could not be read or decoded."""
    pass

class SendError(RTMError):
    """One outbound frame could not be written."""
    pass
