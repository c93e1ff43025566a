"""
Credential policy - Read-only limits injected into domain services.

Built once from application settings at wiring time so the domain layer
never imports configuration machinery.
"""

from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote_plus


@dataclass(frozen=True)
class CredentialPolicy:
    """Process-wide credential limits."""

    rate_limit_window: timedelta = timedelta(minutes=2)
    confirmation_ttl: timedelta = timedelta(minutes=30)
    bcrypt_cost: int = 10
    site_domain: str = "localhost:8000"
    link_scheme: str = "https"

    def confirmation_link(self, token: str, new_email: str) -> str:
        """Build /user/settings/email/{token}?email={quoted} on the site domain."""
        return (
            f"{self.link_scheme}://{self.site_domain}"
            f"/user/settings/email/{token}?email={quote_plus(new_email)}"
        )
