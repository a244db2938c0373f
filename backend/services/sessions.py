"""
LeadDesk - Session registry

Bearer token -> user id, in memory only: a restart logs everybody out.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from config import SESSION_TTL_DAYS, generate_token, now_utc

logger = logging.getLogger("sessions")


@dataclass(frozen=True)
class Session:
    token: str
    user_id: int
    created_at: datetime
    expires_at: datetime


class SessionRegistry:

    def __init__(self, ttl_days: int = SESSION_TTL_DAYS):
        self.ttl = timedelta(days=ttl_days)
        self._sessions: Dict[str, Session] = {}

    def open(self, user_id: int) -> Session:
        now = now_utc()
        session = Session(
            token=generate_token(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self._sessions[session.token] = session
        return session

    def resolve(self, token: str) -> Optional[Session]:
        """Live session for the token, or None (expired ones are dropped)"""
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.expires_at <= now_utc():
            del self._sessions[token]
            return None
        return session

    def close(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    def revoke_user(self, user_id: int) -> int:
        tokens = [t for t, s in self._sessions.items() if s.user_id == user_id]
        for token in tokens:
            del self._sessions[token]
        if tokens:
            logger.info(f"[SESSIONS] Revoked {len(tokens)} session(s) of user {user_id}")
        return len(tokens)

    def __len__(self):
        return len(self._sessions)
