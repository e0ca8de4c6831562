"""Admin access predicate.

Identity is established by the external identity provider; this module only
decides whether a signed-in email may open the admin panels.
"""

from livesync.models.config import AdminConfig


def is_admin(email: str | None, config: AdminConfig) -> bool:
    """Return True if ``email`` is one of the configured admin emails."""
    if not email:
        return False
    return email.strip().lower() in config.emails
