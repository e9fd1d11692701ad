import asyncio
from typing import AsyncIterator, Optional

from pydantic import BaseModel

from lessondeck.core.pipeline.emitter import HEARTBEAT_FRAME, sse_event


class ProgressEventStream:
    """One-way event channel from the server to a single observer.

    Frames are queued in publish order. Writes never block: a closed channel
    or a full buffer means the observer is gone and the write reports failure.
    """

    def __init__(self, session_id: str, maxsize: int = 256) -> None:
        self.session_id = session_id
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def try_publish(self, event: BaseModel) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(sse_event(event))
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        """Stop the stream once already-queued frames have been read."""
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            # no room for the end marker; the stalled observer loses its oldest frame
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def frames(self, heartbeat_interval: float) -> AsyncIterator[str]:
        """Yield SSE frames until closed, with comment heartbeats while idle."""
        while True:
            try:
                frame = await asyncio.wait_for(
                    self._queue.get(), timeout=heartbeat_interval
                )
            except asyncio.TimeoutError:
                yield HEARTBEAT_FRAME
                continue
            if frame is None:
                return
            yield frame
