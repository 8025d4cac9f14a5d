"""moodlekit - batched AJAX client, template renderer and session keepalive for Moodle sites."""

__version__ = "0.3.0"
__logo__ = "🎓"

from moodlekit.client import MoodleClient, create_client  # noqa: E402

__all__ = ["MoodleClient", "create_client", "__version__", "__logo__"]
