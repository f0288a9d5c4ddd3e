"""In-memory payment sessions keyed by provider transaction id.

Provider states are stored verbatim. Only `PAID` triggers the store callback;
the closed states below end a session without one.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone


CREATED = "CREATED"
PAID = "PAID"

CALLBACK_STATES: frozenset[str] = frozenset({PAID})
CLOSED_STATES: frozenset[str] = frozenset({"CANCELED", "TIMEOUTED", "FAILED"})


def triggers_callback(state: str) -> bool:
    return state in CALLBACK_STATES


def is_terminal(state: str) -> bool:
    """True once a session will never produce a callback again."""

    return state in CALLBACK_STATES or state in CLOSED_STATES


@dataclass
class PaymentSession:
    """Mapping of one provider payment to the store's transaction."""

    provider_transaction_id: str
    store_transaction_id: str
    status: str = CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionTable:
    """Live sessions guarded by a single lock.

    `apply_state` updates and, for terminal states, removes the session in the
    same critical section, so duplicate notifications observe it gone.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, PaymentSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, provider_transaction_id: str) -> bool:
        return provider_transaction_id in self._sessions

    def get(self, provider_transaction_id: str) -> PaymentSession | None:
        return self._sessions.get(provider_transaction_id)

    async def add(self, session: PaymentSession) -> None:
        async with self._lock:
            if session.provider_transaction_id in self._sessions:
                raise ValueError(f"duplicate provider transaction id {session.provider_transaction_id}")
            self._sessions[session.provider_transaction_id] = session

    async def apply_state(self, provider_transaction_id: str, state: str) -> PaymentSession | None:
        """Record `state`; return the session, or None when it is unknown."""

        async with self._lock:
            session = self._sessions.get(provider_transaction_id)
            if session is None:
                return None
            session.status = state
            session.updated_at = datetime.now(timezone.utc)
            if is_terminal(state):
                del self._sessions[provider_transaction_id]
            return session
