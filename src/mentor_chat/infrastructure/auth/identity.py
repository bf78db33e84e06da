from __future__ import annotations

import logging

import jwt

from mentor_chat.application.dto.principal import Principal
from mentor_chat.application.ports.auth import TokenVerifier

logger = logging.getLogger(__name__)


class TokenIdentityProvider:
    """Identity of whoever holds ``token``; None when the token does not verify."""

    def __init__(self, verifier: TokenVerifier, token: str | None) -> None:
        self._verifier = verifier
        self._token = token

    async def current_user(self) -> Principal | None:
        if not self._token:
            return None
        try:
            return await self._verifier.verify(self._token)
        except (jwt.PyJWTError, KeyError, ValueError):
            logger.debug("Token rejected", exc_info=True)
            return None


class StaticIdentityProvider:
    """Identity resolved up front, e.g. by an HTTP dependency."""

    def __init__(self, principal: Principal | None) -> None:
        self._principal = principal

    async def current_user(self) -> Principal | None:
        return self._principal
