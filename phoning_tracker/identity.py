from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def user_summary(user: Any) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
    }


class Identity:
    """Passwordless email sign-in backed by Supabase auth."""

    def __init__(self, client: Any, redirect_url: str = ""):
        self.auth = client.auth
        self.redirect_url = redirect_url

    def send_magic_link(self, email: str):
        email = (email or "").strip()
        if not email or "@" not in email:
            raise ValueError("A valid email is required")

        credentials: Dict[str, Any] = {"email": email}
        if self.redirect_url:
            credentials["options"] = {"email_redirect_to": self.redirect_url}
        self.auth.sign_in_with_otp(credentials)

    def current_user(self) -> Optional[Dict[str, Any]]:
        try:
            response = self.auth.get_user()
        except Exception as e:
            logger.warning("Current user lookup failed: %s", e)
            return None
        return user_summary(getattr(response, "user", None))

    def sign_out(self):
        self.auth.sign_out()

    def subscribe(self, callback: Callable[[str, Optional[Dict[str, Any]]], None]):
        """Call `callback(event, user)` on every auth state change.

        Returns the subscription; call its `unsubscribe()` on teardown.
        """
        def listener(event, session):
            user = getattr(session, "user", None) if session is not None else None
            callback(str(getattr(event, "value", event)), user_summary(user))

        return self.auth.on_auth_state_change(listener)
