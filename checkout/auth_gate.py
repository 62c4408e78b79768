"""Sign-in precondition for the confirm action."""

from __future__ import annotations
from tracking import t

import logging
from typing import Optional

from booking.collaborators import AuthProvider


class AuthGate:
    """Delegates to the auth provider when the caller is signed out.

    The gate never resumes the confirm action itself: once sign-in resolves
    the caller has to confirm again.
    """

    def __init__(self, provider: AuthProvider, *, logger: Optional[logging.Logger] = None) -> None:
        t('checkout.auth_gate.AuthGate.__init__')
        self._provider = provider
        self.logger = logger or logging.getLogger('AuthGate')
        self.prompts = 0

    def is_authenticated(self) -> bool:
        return bool(self._provider.is_authenticated())

    async def require(self) -> bool:
        """Return True when already signed in, otherwise prompt and return False."""
        t('checkout.auth_gate.AuthGate.require')
        if self.is_authenticated():
            return True

        self.prompts += 1
        self.logger.info("Confirm requested while signed out - prompting sign-in")
        try:
            await self._provider.prompt_sign_in()
        except Exception as exc:
            self.logger.warning("Sign-in prompt ended with an error: %s", exc)
        return False
