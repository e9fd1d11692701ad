"""Process-wide table of live progress sessions.

The registry is the only writer to a session's event stream. Every publish is
best-effort: an unknown, expired or dead session yields ``False`` and never an
exception, so losing an observer only costs live progress visibility.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union

from lessondeck.core.infra.metrics import ACTIVE_SESSIONS, observe_event
from lessondeck.core.sessions.stream import ProgressEventStream
from lessondeck.models.schema import (
    CompletedEvent,
    CompletionPayload,
    ConnectedEvent,
    ProgressEvent,
    ProgressPayload,
    utcnow,
)

logger = logging.getLogger(__name__)

PublishedEvent = Union[ProgressEvent, CompletedEvent]


@dataclass
class GenerationSession:
    session_id: str
    stream: ProgressEventStream
    loop: asyncio.AbstractEventLoop
    created_at: datetime = field(default_factory=utcnow)
    last_activity: float = field(default_factory=time.monotonic)
    completing: bool = False
    timer: Optional[asyncio.TimerHandle] = None


class GenerationSessionRegistry:
    """Maps a session id to its active progress stream and owns its lifecycle.

    Teardown happens on the completion handshake (after a grace delay), on
    observer disconnect, or when the session has been inactive for
    ``inactivity_timeout_sec``. ``register`` must run on the event loop that
    serves the stream; publishing and eviction may happen from any thread.
    """

    def __init__(
        self,
        inactivity_timeout_sec: float = 600.0,
        completion_grace_sec: float = 1.0,
        queue_maxsize: int = 256,
    ) -> None:
        self.inactivity_timeout_sec = inactivity_timeout_sec
        self.completion_grace_sec = completion_grace_sec
        self.queue_maxsize = queue_maxsize
        self._sessions: Dict[str, GenerationSession] = {}
        self._lock = threading.Lock()

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def get(self, session_id: str) -> Optional[GenerationSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def register(self, session_id: str) -> ProgressEventStream:
        """Create (or silently replace) the session and queue a ``connected`` event."""
        stream = ProgressEventStream(session_id, maxsize=self.queue_maxsize)
        session = GenerationSession(
            session_id=session_id, stream=stream, loop=asyncio.get_running_loop()
        )
        with self._lock:
            previous = self._sessions.get(session_id)
            self._sessions[session_id] = session
            ACTIVE_SESSIONS.set(len(self._sessions))

        if previous is not None:
            logger.info("Session %s re-registered; previous subscriber dropped", session_id)
            self._teardown(previous)

        self._arm(session, self.inactivity_timeout_sec)
        delivered = stream.try_publish(ConnectedEvent(session_id=session_id))
        observe_event("connected", delivered)
        logger.info("Progress session %s registered", session_id)
        return stream

    def publish_progress(self, session_id: str, payload: ProgressPayload) -> bool:
        event = ProgressEvent(session_id=session_id, data=payload)
        return self._publish(session_id, event, completing=False)

    def publish_completion(self, session_id: str, payload: CompletionPayload) -> bool:
        """Queue the ``completed`` event, then close the stream after the grace delay."""
        event = CompletedEvent(session_id=session_id, data=payload)
        return self._publish(session_id, event, completing=True)

    def disconnect(self, session_id: str, stream: ProgressEventStream) -> bool:
        """Observer went away. Only tears down the entry if it still owns ``stream``."""
        return self._evict_if_current(session_id, stream)

    def evict(self, session_id: str) -> bool:
        """Remove the session and close its stream. A second call is a no-op."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            ACTIVE_SESSIONS.set(len(self._sessions))
        if session is None:
            return False
        self._teardown(session)
        logger.info("Progress session %s closed", session_id)
        return True

    def close_all(self) -> None:
        for session_id in self.session_ids():
            self.evict(session_id)

    # --- internals ---

    def _publish(self, session_id: str, event: PublishedEvent, completing: bool) -> bool:
        session = self.get(session_id)
        if session is None:
            logger.debug("No session %s; %s event dropped", session_id, event.type)
            observe_event(event.type, False)
            return False

        if self._on_session_loop(session):
            return self._deliver(session, event, completing)

        # Called from a worker thread: the queue and timers belong to the loop.
        try:
            session.loop.call_soon_threadsafe(self._deliver, session, event, completing)
        except RuntimeError:
            logger.info("Event loop for session %s is closed; %s event dropped", session_id, event.type)
            observe_event(event.type, False)
            return False
        return True

    def _deliver(self, session: GenerationSession, event: PublishedEvent, completing: bool) -> bool:
        if self.get(session.session_id) is not session:
            observe_event(event.type, False)
            return False

        if not session.stream.try_publish(event):
            logger.info("Observer for session %s is gone; evicting", session.session_id)
            observe_event(event.type, False)
            self._evict_if_current(session.session_id, session.stream)
            return False

        observe_event(event.type, True)
        session.last_activity = time.monotonic()
        if completing:
            session.completing = True
            self._arm(session, self.completion_grace_sec)
        elif not session.completing:
            self._arm(session, self.inactivity_timeout_sec)
        return True

    def _evict_if_current(self, session_id: str, stream: ProgressEventStream) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.stream is not stream:
                return False
            del self._sessions[session_id]
            ACTIVE_SESSIONS.set(len(self._sessions))
        self._teardown(session)
        logger.info("Progress session %s closed", session_id)
        return True

    def _on_timer(self, session_id: str, stream: ProgressEventStream) -> None:
        session = self.get(session_id)
        if session is not None and session.stream is stream and not session.completing:
            logger.warning(
                "Session %s inactive for %.0fs; forcing teardown",
                session_id,
                self.inactivity_timeout_sec,
            )
        self._evict_if_current(session_id, stream)

    def _arm(self, session: GenerationSession, delay: float) -> None:
        if session.timer is not None:
            session.timer.cancel()
        session.timer = session.loop.call_later(
            delay, self._on_timer, session.session_id, session.stream
        )

    @staticmethod
    def _on_session_loop(session: GenerationSession) -> bool:
        try:
            return asyncio.get_running_loop() is session.loop
        except RuntimeError:
            return False

    def _teardown(self, session: GenerationSession) -> None:
        if self._on_session_loop(session):
            self._close(session)
            return
        try:
            session.loop.call_soon_threadsafe(self._close, session)
        except RuntimeError:
            # Loop already closed: no reader is left to wake.
            logger.debug("Event loop for session %s is closed", session.session_id)

    @staticmethod
    def _close(session: GenerationSession) -> None:
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None
        session.stream.close()
