from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from core.config import get_settings
from roundtable.exceptions import NotRegisteredError

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class VotingAccess:
    roundtable_id: str
    email: str


class VotingTokenCipher:
    """Issues and reads the opaque links participants use to reach their ballot."""

    def __init__(self, key: Optional[str] = None, ttl_days: Optional[int] = None) -> None:
        settings = get_settings() if key is None or ttl_days is None else None
        self._fernet = Fernet(key or settings.secrets_key)
        self._ttl = (ttl_days if ttl_days is not None else settings.voting_token_ttl_days) * SECONDS_PER_DAY

    def issue(self, roundtable_id: str, email: str) -> str:
        payload = json.dumps({"roundtable_id": roundtable_id, "email": email}, separators=(",", ":"))
        return self._fernet.encrypt(payload.encode()).decode()

    def resolve(self, token: str) -> VotingAccess:
        try:
            payload = json.loads(self._fernet.decrypt(token.encode(), ttl=self._ttl))
        except (InvalidToken, ValueError) as exc:
            raise NotRegisteredError("Voting link is invalid or has expired") from exc
        return VotingAccess(roundtable_id=payload["roundtable_id"], email=payload["email"])
