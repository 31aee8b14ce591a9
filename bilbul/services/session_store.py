"""
Server-held split sessions.

Sessions live in process memory, keyed by a random UUID. Each session has
its own asyncio.Lock; routes hold it for the whole command so ledger
mutations for one session are serialized even while an external call is in
flight. Idle sessions are dropped after SESSION_TTL_SECONDS.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from bilbul.agents.extraction import run_extraction_agent
from bilbul.agents.suggestion import run_suggestion_agent
from bilbul.config import settings
from bilbul.services.usage_service import UsageTracker
from bilbul.split.session import Extractor, SplitSession, Suggester

logger = logging.getLogger(__name__)

_session_store: Optional["SessionStore"] = None


@dataclass
class _Entry:
    session: SplitSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_access: float = 0.0


class SessionStore:
    """
    Registry of live SplitSessions.

    Args:
        extractor: async callable used by every session for receipt extraction
        suggester: async callable used by every session for simple splits
        usage: shared UsageTracker (one-free-split policy)
        timeout_seconds: bound for each external call
        max_participants: largest accepted person count
        ttl_seconds: idle time after which a session is discarded
    """

    def __init__(
        self,
        extractor: Extractor,
        suggester: Suggester,
        usage: UsageTracker,
        timeout_seconds: float = 30.0,
        max_participants: int = 5,
        ttl_seconds: float = 3600.0,
    ):
        self._extractor = extractor
        self._suggester = suggester
        self.usage = usage
        self._timeout_seconds = timeout_seconds
        self._max_participants = max_participants
        self._ttl_seconds = ttl_seconds
        self._entries: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [
            session_id
            for session_id, entry in self._entries.items()
            if now - entry.last_access > self._ttl_seconds and not entry.lock.locked()
        ]
        for session_id in expired:
            del self._entries[session_id]
        if expired:
            logger.info(f"Dropped {len(expired)} idle split sessions")

    def create(self) -> SplitSession:
        self._prune()
        session_id = str(uuid.uuid4())
        session = SplitSession(
            session_id=session_id,
            extractor=self._extractor,
            suggester=self._suggester,
            usage=self.usage,
            timeout_seconds=self._timeout_seconds,
            max_participants=self._max_participants,
        )
        self._entries[session_id] = _Entry(session=session, last_access=time.monotonic())
        logger.info(f"Created split session {session_id}")
        return session

    def get(self, session_id: str) -> Optional[SplitSession]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        entry.last_access = time.monotonic()
        return entry.session

    def lock(self, session_id: str) -> asyncio.Lock:
        """Per-session lock. Raises KeyError for unknown sessions."""
        return self._entries[session_id].lock

    def delete(self, session_id: str) -> bool:
        entry = self._entries.pop(session_id, None)
        if entry is None:
            return False
        logger.info(f"Deleted split session {session_id}")
        return True


def get_session_store() -> SessionStore:
    """
    FastAPI dependency returning the process-wide SessionStore.

    Lazily built so importing the app does not require Gemini credentials.
    """
    global _session_store

    if _session_store is None:
        _session_store = SessionStore(
            extractor=run_extraction_agent,
            suggester=run_suggestion_agent,
            usage=UsageTracker(ttl_seconds=settings.USAGE_TTL_SECONDS),
            timeout_seconds=settings.AGENT_TIMEOUT_SECONDS,
            max_participants=settings.MAX_PARTICIPANTS,
            ttl_seconds=settings.SESSION_TTL_SECONDS,
        )
    return _session_store
