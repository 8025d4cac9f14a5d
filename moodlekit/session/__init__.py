"""Session keepalive."""

from moodlekit.session.keepalive import (
    KeepaliveMode,
    KeepaliveState,
    SessionKeepalive,
    get_active_keepalive,
    start_keepalive,
    stop_keepalive,
)

__all__ = [
    "KeepaliveMode",
    "KeepaliveState",
    "SessionKeepalive",
    "get_active_keepalive",
    "start_keepalive",
    "stop_keepalive",
]
