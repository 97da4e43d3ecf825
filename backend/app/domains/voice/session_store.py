"""In-memory, TTL-bounded conversation state for voice sessions.

The store is the only shared mutable state of the voice pipeline. It is
created once per process, owned by the application lifespan, and injected
into the pipeline; nothing reaches into its dictionary directly.
"""

import asyncio
import contextlib
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger("voice")

Role = Literal["user", "assistant"]
VALID_ROLES: frozenset[str] = frozenset({"user", "assistant"})


@dataclass(frozen=True)
class Turn:
    """One utterance of a conversation."""

    role: Role
    text: str


@dataclass
class ConversationState:
    """Turns and last activity of one session.

    Only ever mutated by appending, under ``lock``.
    """

    turns: list[Turn] = field(default_factory=list)
    last_activity: float = 0.0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


class SessionStore:
    """Concurrent session_id -> ConversationState map with TTL expiry.

    Each session has its own lock: appends to one session are serialized,
    while unrelated sessions never wait on each other. ``sweep`` skips any
    session whose lock is held, so an in-flight append is never evicted
    underneath it.

    Usage:
        store = SessionStore(ttl_seconds=1800)
        store.start_sweeper(interval_seconds=300)
        await store.append_exchange(session_id, "hello", "hi there")
        history = await store.get_history(session_id)
        await store.stop_sweeper()
    """

    def __init__(
        self,
        ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[uuid.UUID, ConversationState] = {}
        self._sweeper_task: asyncio.Task | None = None

    async def get_history(self, session_id: uuid.UUID) -> list[Turn]:
        """Return a copy of the session's turns; empty for unknown sessions."""
        state = self._sessions.get(session_id)
        if state is None:
            return []
        async with state.lock:
            return list(state.turns)

    async def append(self, session_id: uuid.UUID, role: Role, text: str) -> int:
        """Append one turn, creating the session if needed.

        Returns:
            Number of turns in the session after the append
        """
        return await self._append(session_id, [Turn(role=role, text=text)])

    async def append_exchange(
        self,
        session_id: uuid.UUID,
        user_text: str,
        assistant_text: str,
    ) -> int:
        """Append a user turn then an assistant turn in one critical section.

        Concurrent exchanges on the same session never interleave.

        Returns:
            Number of turns in the session after the append
        """
        return await self._append(
            session_id,
            [Turn(role="user", text=user_text), Turn(role="assistant", text=assistant_text)],
        )

    async def _append(self, session_id: uuid.UUID, turns: list[Turn]) -> int:
        for turn in turns:
            if turn.role not in VALID_ROLES:
                raise ValueError(f"Invalid role: {turn.role!r}")

        while True:
            state = self._sessions.setdefault(session_id, ConversationState())
            async with state.lock:
                # Evicted while we waited for the lock: retry on a fresh entry
                if self._sessions.get(session_id) is not state:
                    continue
                state.turns.extend(turns)
                state.last_activity = self._clock()
                return len(state.turns)

    def sweep(self, ttl_seconds: float | None = None) -> int:
        """Evict sessions idle for longer than the TTL.

        Sessions whose lock is held are skipped and reconsidered on the
        next sweep. A session touched after the sweep started is retained.

        Returns:
            Number of evicted sessions
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        cutoff = self._clock() - ttl

        expired = [
            session_id
            for session_id, state in list(self._sessions.items())
            if not state.lock.locked() and state.last_activity < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(
                "Expired voice sessions evicted",
                extra={
                    "service": "voice",
                    "evicted": len(expired),
                    "remaining": len(self._sessions),
                },
            )
        return len(expired)

    def active_count(self) -> int:
        """Number of live sessions (observability only)."""
        return len(self._sessions)

    # ------------------------------------------------------------------
    # Background sweeper

    def start_sweeper(self, interval_seconds: float) -> asyncio.Task:
        """Start the periodic sweep task (idempotent)."""
        if self._sweeper_task is not None and not self._sweeper_task.done():
            return self._sweeper_task
        self._sweeper_task = asyncio.create_task(
            self._sweep_loop(interval_seconds),
            name="voice-session-sweeper",
        )
        logger.info(
            "Session sweeper started",
            extra={"service": "voice", "interval_seconds": interval_seconds},
        )
        return self._sweeper_task

    async def stop_sweeper(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweeper_task = self._sweeper_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Session sweeper stopped", extra={"service": "voice"})

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper_task is not None and not self._sweeper_task.done()

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.sweep()
            except Exception as e:  # noqa: BLE001
                logger.error(
                    "Session sweep failed",
                    extra={"service": "voice", "error": str(e)},
                    exc_info=True,
                )
