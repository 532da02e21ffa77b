"""PresentationRelay - forwards session events to WebSocket consumers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from aiohttp import WSMsgType, web

from aiovoicerooms.models.events import RosterEntry, RosterSnapshotEvent
from aiovoicerooms.models.types import SessionEvent, SessionEventType
from aiovoicerooms.session.controller import SessionController

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8930
DEFAULT_PATH = "/voicerooms"
DEFAULT_HOST = "0.0.0.0"

# Events buffered per consumer before it is considered too slow and dropped.
MAX_PENDING_EVENTS = 256


class _RelayConnection:
    """One connected presentation consumer."""

    def __init__(self, wsock: web.WebSocketResponse, remote: str | None) -> None:
        self.wsock = wsock
        self.remote = remote
        self._to_write: asyncio.Queue[SessionEvent] = asyncio.Queue(maxsize=MAX_PENDING_EVENTS)
        self._logger = logger.getChild("connection")
        self._close_task: asyncio.Task[bool] | None = None

    def send_event(self, event: SessionEvent) -> bool:
        """Enqueue an event. Returns False if the consumer fell too far behind."""
        try:
            self._to_write.put_nowait(event)
        except asyncio.QueueFull:
            self._logger.error("Event queue full for %s, consumer too slow", self.remote)
            return False
        return True

    def close_soon(self) -> None:
        """Close the socket from a separate task."""
        if self._close_task is None and not self.wsock.closed:
            self._close_task = asyncio.get_running_loop().create_task(self.wsock.close())

    async def writer(self) -> None:
        """Write queued events until the socket closes."""
        try:
            while not self.wsock.closed:
                event = await self._to_write.get()
                try:
                    await self.wsock.send_str(event.to_json())
                except ConnectionError:
                    self._logger.warning(
                        "Connection error sending to %s, ending writer", self.remote
                    )
                    break
        except Exception:
            self._logger.exception("Error in writer task for %s", self.remote)


class PresentationRelay:
    """
    WebSocket endpoint streaming session events to presentation code.

    Every consumer first receives a roster-snapshot message describing the
    current participants, followed by every session event as it is emitted,
    serialized as JSON with a ``type`` field. Messages sent by consumers are
    ignored.

    Usage:
        controller = SessionController(transport, config)
        relay = PresentationRelay(controller)
        await relay.start(port=8930)
        ...
        await relay.close()
    """

    _controller: SessionController
    _connections: set[_RelayConnection]
    _unsubscribers: list[Callable[[], None]]
    _app: web.Application | None = None
    _app_runner: web.AppRunner | None = None
    _tcp_site: web.TCPSite | None = None

    def __init__(self, controller: SessionController, *, path: str = DEFAULT_PATH) -> None:
        """
        Initialize the relay for a controller.

        Args:
            controller: Controller whose events are forwarded.
            path: WebSocket endpoint path (default: /voicerooms).
        """
        self._controller = controller
        self._path = path
        self._connections = set()
        self._unsubscribers = []

    @property
    def path(self) -> str:
        """WebSocket endpoint path."""
        return self._path

    @property
    def connection_count(self) -> int:
        """Number of connected consumers."""
        return len(self._connections)

    def _create_web_application(self) -> web.Application:
        app = web.Application()
        app.router.add_get(self._path, self._handle_connect)
        return app

    async def start(self, port: int = DEFAULT_PORT, host: str = DEFAULT_HOST) -> None:
        """Start serving the WebSocket endpoint."""
        if self._app is not None:
            logger.warning("Relay is already running")
            return

        logger.info("Starting presentation relay on port %d", port)
        self._unsubscribers = [
            self._controller.on(event_type, self._broadcast) for event_type in SessionEventType
        ]
        self._app = self._create_web_application()
        self._app_runner = web.AppRunner(self._app)
        await self._app_runner.setup()
        try:
            self._tcp_site = web.TCPSite(
                self._app_runner,
                host=host if host != DEFAULT_HOST else None,
                port=port,
            )
            await self._tcp_site.start()
        except OSError as e:
            logger.error("Failed to start relay on %s:%d: %s", host, port, e)
            await self.close()
            raise
        logger.info("Presentation relay started on %s:%d%s", host, port, self._path)

    async def close(self) -> None:
        """Disconnect all consumers and stop serving."""
        for unsub in self._unsubscribers:
            unsub()
        self._unsubscribers = []

        for connection in list(self._connections):
            if not connection.wsock.closed:
                try:
                    async with asyncio.timeout(1.0):
                        await connection.wsock.close()
                except TimeoutError:
                    logger.debug("Timeout closing consumer websocket")

        if self._tcp_site:
            await self._tcp_site.stop()
            self._tcp_site = None
            logger.debug("TCP site stopped")

        if self._app_runner:
            await self._app_runner.cleanup()
            self._app_runner = None
            logger.debug("App runner cleaned up")

        if self._app:
            await self._app.shutdown()
            self._app = None

    def build_snapshot(self) -> RosterSnapshotEvent:
        """Describe the current roster."""
        return RosterSnapshotEvent(
            state=self._controller.state.value,
            room_id=self._controller.room_id,
            participants=[
                RosterEntry(
                    participant_id=p.participant_id,
                    is_local=p.is_local,
                    speaking=p.speaking,
                    has_audio=p.has_audio,
                )
                for p in self._controller.participants
            ],
        )

    def _broadcast(self, event: SessionEvent) -> None:
        for connection in list(self._connections):
            if not connection.send_event(event):
                self._connections.discard(connection)
                connection.close_soon()

    async def _handle_connect(self, request: web.Request) -> web.StreamResponse:
        """Handle an incoming WebSocket connection from a presentation consumer."""
        logger.debug("Incoming consumer connection from %s", request.remote)
        wsock = web.WebSocketResponse(heartbeat=30)
        await wsock.prepare(request)

        connection = _RelayConnection(wsock, request.remote)
        connection.send_event(self.build_snapshot())
        self._connections.add(connection)
        writer_task = asyncio.get_running_loop().create_task(connection.writer())
        try:
            async for msg in wsock:
                if msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                    break
                if msg.type == WSMsgType.ERROR:
                    logger.debug("Consumer connection error: %s", wsock.exception())
                    break
                logger.debug("Ignoring message from consumer %s", request.remote)
        finally:
            self._connections.discard(connection)
            writer_task.cancel()
            try:
                await writer_task
            except asyncio.CancelledError:
                pass
            if not wsock.closed:
                await wsock.close()
            logger.debug("Consumer %s disconnected", request.remote)
        return wsock
