"""
LiveKit token issuer.

Mints the signed access tokens clients use to join a voice room.
"""

import json
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

import jwt
import structlog

from src.config.settings import LiveKitSettings
from src.session.exceptions import InvalidArgument
from src.session.models import AccessCredential, VoiceGrants

logger = structlog.get_logger("livekit")

ALGORITHM = "HS256"


class LiveKitTokenIssuer:
    """
    Issues LiveKit JWTs.

    Every token carries the same fixed grant set (join, publish, subscribe,
    publish-data) scoped to exactly one room.
    """

    def __init__(self, settings: LiveKitSettings):
        """
        Args:
            settings: Validated LiveKit credentials
        """
        self.url = settings.url
        self.api_key = settings.api_key
        self._api_secret = settings.api_secret
        self.ttl = settings.token_ttl_seconds

    def create_token(
        self,
        room_name: str,
        participant_identity: str,
        persona: Optional[str] = None,
    ) -> AccessCredential:
        """
        Create a JWT for joining a room.

        Args:
            room_name: Room the token is scoped to
            participant_identity: Identity the client joins as
            persona: Persona recorded in participant metadata

        Returns:
            AccessCredential holding the signed token

        Raises:
            InvalidArgument: If room_name or participant_identity is empty
        """
        if not room_name or not participant_identity:
            raise InvalidArgument("Room name and participant ID are required")

        now = int(time.time())
        exp = now + self.ttl
        grants = VoiceGrants(room=room_name)

        payload = {
            "iss": self.api_key,
            "sub": participant_identity,
            "iat": now,
            "nbf": now,
            "exp": exp,
            "jti": f"{participant_identity}-{uuid.uuid4().hex[:12]}",
            "name": participant_identity,
            "metadata": json.dumps({"persona": persona, "type": "voice"}),
            "video": grants.model_dump(),
        }

        token = jwt.encode(payload, self._api_secret, algorithm=ALGORITHM)
        logger.info(
            "token_issued",
            room_name=room_name,
            participant=participant_identity,
            ttl=self.ttl,
        )

        return AccessCredential(
            token=token,
            issued_to=participant_identity,
            room=room_name,
            grants=grants,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )

    def verify(self, token: str) -> dict:
        """
        Decode and verify a token issued with these credentials.

        Raises:
            jwt.InvalidTokenError: Bad signature, wrong issuer or expired
        """
        return jwt.decode(
            token,
            self._api_secret,
            algorithms=[ALGORITHM],
            issuer=self.api_key,
        )

    def self_check(self) -> None:
        """Sign a throwaway token to prove the credentials are usable."""
        self.create_token("test-room", "test-user")
