"""Jitsi-as-a-Service (JaaS) meeting tokens signed with the tenant's RSA key."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import jwt

# Features granted to every participant; JaaS expects string booleans.
DEFAULT_FEATURES = {
    "livestreaming": "false",
    "recording": "false",
    "transcription": "false",
    "sip-inbound-call": "false",
    "sip-outbound-call": "false",
    "inbound-call": "false",
    "outbound-call": "false",
    "send-groupchat": "true",
    "create-polls": "true",
}


class TokenSignerError(RuntimeError):
    pass


@dataclass
class JitsiUser:
    id: str = "user123"
    name: str = "Your User"
    email: str = "user@example.com"
    moderator: str = "true"


def clean_private_key(pem: str) -> str:
    """Return a usable PEM string or raise ``TokenSignerError``.

    Keys pasted into environment variables often arrive with literal ``\\n``
    sequences; those are turned back into newlines.
    """
    text = pem.strip().replace("\\n", "\n")
    if "Proc-Type:" in text and "ENCRYPTED" in text:
        raise TokenSignerError(
            "Private key is encrypted. JaaS requires an unencrypted key; decrypt it with "
            "`openssl rsa -in encrypted-key.pem -out decrypted-key.pem`."
        )
    if "DEK-Info:" in text:
        raise TokenSignerError("Private key appears to be encrypted (contains DEK-Info).")
    if "BEGIN" not in text or "END" not in text:
        raise TokenSignerError("PEM format appears to be invalid - missing BEGIN/END markers")
    return text


class JaasTokenSigner:
    def __init__(
        self,
        app_id: str,
        key_id: str,
        private_key_pem: str,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._app_id = app_id
        self._key_id = key_id
        self._private_key = clean_private_key(private_key_pem)
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._logger = logging.getLogger("scribe.tokens")

    def claims(self, room: str, user: JitsiUser) -> dict:
        now = int(self._clock().timestamp())
        return {
            "aud": "jitsi",
            "iss": "chat",
            "sub": self._app_id,
            "room": room,
            "exp": now + self._ttl_seconds,
            "nbf": now,
            "context": {
                "user": {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "moderator": user.moderator,
                },
                "features": dict(DEFAULT_FEATURES),
                "room": {"regex": False},
            },
        }

    def sign(self, room: str, user: JitsiUser) -> str:
        try:
            token = jwt.encode(
                self.claims(room, user),
                self._private_key,
                algorithm="RS256",
                headers={"kid": self._key_id, "typ": "JWT"},
            )
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise TokenSignerError(f"Failed to sign token: {exc}") from exc
        self._logger.info("Token issued: room=%s user=%s", room, user.id)
        return token
