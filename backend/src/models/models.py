import asyncio
import logging
import uuid
from typing import Optional, Set, List

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from models.errors import CapacityExceeded
from utilities import make_ping
from utilities import (
    MAX_VIEWERS,
    PING_INTERVAL,
    SEND_QUEUE_SIZE,
    CLOSE_TIMEOUT,
    ROLE_UNASSIGNED,
    ROLE_RETIRED,
)

logger = logging.getLogger(__name__)

# queued after the last message; the sender task closes the socket on it
_CLOSE = object()

# ------------ In-memory structures ------------
class Connection:
    ''' One websocket session and its role tag.'''

    def __init__(self, websocket: WebSocket):

        # initialize fields
        self.websocket = websocket
        self.conn_id = uuid.uuid4().hex[:8]
        client = getattr(websocket, "client", None)
        self.client = f"{client.host}:{client.port}" if client else "unknown"

        # assigned once by the first register message, "retired" on close
        self.role = ROLE_UNASSIGNED

        # per connection outbound buffer
        # no handler ever waits for another connection's socket
        # if this peer is slow messages accumulate up to SEND_QUEUE_SIZE,
        # after that the oldest queued message is dropped
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=SEND_QUEUE_SIZE)

        # background task that pops from queue and writes to the websocket,
        # started on first use
        self.sender_task: Optional[asyncio.Task] = None
        self.close_code = 1000

        # recurring liveness ping, owned by this connection
        self.ping_task: Optional[asyncio.Task] = None
        self.closed = False

    def __repr__(self):
        return f"<Connection {self.conn_id} {self.client} role={self.role}>"

    def _transport_open(self) -> bool:
        ws = self.websocket
        return (
            ws.client_state == WebSocketState.CONNECTED
            and ws.application_state == WebSocketState.CONNECTED
        )

    def is_sendable(self) -> bool:
        return not self.closed and self._transport_open()

    def _enqueue(self, item):
        if self.sender_task is None:
            self.sender_task = asyncio.create_task(self._sender_loop())
        if self.queue.full():
            # drop oldest
            try:
                self.queue.get_nowait()
                self.queue.task_done()
            except asyncio.QueueEmpty:
                pass
            logger.warning("send queue of %s overflowed, oldest message dropped", self)
        self.queue.put_nowait(item)

    def send(self, message: dict) -> bool:
        """
        Queue a message without waiting for the socket. Returns False when it
        was skipped because the connection is not sendable.
        """
        if not self.is_sendable():
            return False
        self._enqueue(message)
        return True

    def close(self, code: int = 1000):
        """
        Stop accepting messages; the socket is closed once everything queued
        before this call has been written.
        """
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        self._enqueue(_CLOSE)

    async def _sender_loop(self):
        ws = self.websocket
        while True:
            item = await self.queue.get()
            try:
                if item is _CLOSE:
                    if self._transport_open():
                        await ws.close(code=self.close_code)
                    return
                if self._transport_open():
                    await ws.send_json(item)
            except Exception as exc:
                # (broken pipe / closed) -> this message is lost, keep draining
                logger.debug("write to %s failed: %s", self, exc)
            finally:
                self.queue.task_done()

    async def wait_closed(self, timeout: float = CLOSE_TIMEOUT):
        ''' Wait for the sender task to finish, cancelling it after ``timeout``.'''
        task = self.sender_task
        if task is None:
            return
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            logger.warning("%s did not drain in %.1fs, dropping its queue", self, timeout)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------ liveness ------------
    def start_liveness(self, interval: float = PING_INTERVAL):
        if self.ping_task is None:
            self.ping_task = asyncio.create_task(self._liveness_loop(interval))

    async def _liveness_loop(self, interval: float):
        # application level {"type": "ping"}; pages ignore message types
        # they do not handle
        while True:
            await asyncio.sleep(interval)
            if not self.send(make_ping()):
                return

    async def stop_liveness(self):
        task, self.ping_task = self.ping_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def retire(self):
        ''' Terminal transition: stop the ping and mark the role retired.'''
        await self.stop_liveness()
        self.role = ROLE_RETIRED


class ConnectionRegistry:
    """
    Who is connected as what: one artist slot and a bounded viewer set.

    None of the methods touching the slot or the set await, so a capacity
    check and the insert that follows it run as one step on the event loop.
    """

    def __init__(self, max_viewers: int = MAX_VIEWERS):
        self.max_viewers = max_viewers
        self.artist: Optional[Connection] = None
        self._viewers: Set[Connection] = set()

    def register_publisher(self, conn: Connection) -> Optional[Connection]:
        """
        Put ``conn`` in the artist slot; a new artist always wins. The
        previous artist (if any) is closed and returned, its own teardown
        runs from its receive loop.
        """
        previous, self.artist = self.artist, conn
        if previous is None or previous is conn:
            return None
        logger.warning("replacing artist %s with %s", previous, conn)
        previous.close()
        return previous

    def register_subscriber(self, conn: Connection):
        if conn in self._viewers:
            return
        if len(self._viewers) >= self.max_viewers:
            raise CapacityExceeded(self.max_viewers)
        self._viewers.add(conn)

    def unregister_publisher(self, conn: Connection) -> bool:
        # a newer artist may already own the slot
        if self.artist is conn:
            self.artist = None
            return True
        return False

    def unregister_subscriber(self, conn: Connection) -> bool:
        if conn in self._viewers:
            self._viewers.discard(conn)
            return True
        return False

    def subscriber_count(self) -> int:
        return len(self._viewers)

    def current_publisher(self) -> Optional[Connection]:
        return self.artist

    def viewers(self) -> List[Connection]:
        # snapshot
        return list(self._viewers)

    def stats(self) -> dict:
        return {
            "artist_connected": self.artist is not None,
            "viewers": len(self._viewers),
            "max_viewers": self.max_viewers,
        }

    async def close_all(self, timeout: float = CLOSE_TIMEOUT):
        ''' Shutdown: close the artist and every viewer, best effort.'''
        conns = ([self.artist] if self.artist is not None else []) + list(self._viewers)
        self.artist = None
        self._viewers.clear()
        for conn in conns:
            conn.close(code=1001)
        # give queued close frames a bounded chance to go out
        await asyncio.gather(*(conn.wait_closed(timeout) for conn in conns))
        logger.info("closed %d connection(s) on shutdown", len(conns))
