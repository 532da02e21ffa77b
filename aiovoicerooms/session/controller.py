"""Lifecycle of the local session and dispatch of transport events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from aiovoicerooms.models.core import SessionConfig, VolumeSample
from aiovoicerooms.models.events import (
    EVENT_TYPES,
    ParticipantAddedEvent,
    ParticipantRemovedEvent,
    SessionErrorEvent,
    SpeakingChangedEvent,
)
from aiovoicerooms.models.types import (
    MediaKind,
    ParticipantId,
    SessionEvent,
    SessionEventType,
    SessionState,
)
from aiovoicerooms.util import generate_local_id

from .emitter import EventEmitter, SessionEventHandler
from .errors import (
    AlreadyActiveError,
    ConnectionLostError,
    DeviceUnavailableError,
    SubscribeError,
    TransportJoinError,
    TransportLeaveError,
    TransportPublishError,
    VoiceRoomError,
)
from .participant import Participant, ParticipantRegistry, release_track
from .transport import (
    AudioTrack,
    ConnectionLostEvent,
    Transport,
    TransportEvent,
    UserJoinedEvent,
    UserLeftEvent,
    UserPublishedEvent,
    VolumeIndicatorEvent,
)
from .volume import VolumeMonitor

logger = logging.getLogger(__name__)


class _EnterCancelled(Exception):
    """Raised inside enter() once a cancellation was requested."""


class SessionController:
    """
    Drives one audio-only session in a single room.

    Local intent (enter(), leave()) is translated into transport operations.
    Transport events are translated into roster and speaking-state updates,
    which are reported through the event emitter.

    All methods must be called from the event loop the controller was created
    on. Operations never overlap, so no locking is needed; transport operations
    suspend the calling task, which lets other events run in between. Events
    that arrive in a state where they make no sense are ignored.
    """

    _transport: Transport
    """Transport that performs the actual network operations."""
    _config: SessionConfig
    """Configuration, fixed at construction."""
    _emitter: EventEmitter
    """Emitter the session events are reported through."""
    _registry: ParticipantRegistry
    """The roster."""
    _state: SessionState = SessionState.IDLE
    """Current lifecycle state."""
    _room_id: str | None = None
    """Room of the current session, None while idle."""
    _local_id: ParticipantId | None = None
    """Local participant ID of the current session, None while idle."""
    _microphone: AudioTrack | None = None
    """Local microphone track, owned by the controller while held."""
    _joined: bool = False
    """Whether the transport join completed for the current session."""
    _published: bool = False
    """Whether the microphone track is published for the current session."""
    _cancel_requested: bool = False
    """Set when enter() has to stop after its current step."""
    _cancel_error: VoiceRoomError | None = None
    """Error to report once a cancelled enter() has rolled back, if any."""
    _transition_done: asyncio.Event | None = None
    """Set when the running enter() or teardown has finished."""
    _generation: int = 0
    """Incremented for every session, to detect stale subscribe results."""
    _closed: bool = False
    """Set by close(). A closed controller cannot enter a room again."""

    def __init__(
        self,
        transport: Transport,
        config: SessionConfig | None = None,
        *,
        emitter: EventEmitter | None = None,
    ) -> None:
        """
        Create a controller and start listening to transport events.

        Must be called from within a running event loop.

        Args:
            transport: The real-time transport to drive.
            config: Session configuration. Defaults are used if None.
            emitter: Emitter to report session events through. A new one is
                created if None.
        """
        self._transport = transport
        self._config = config if config is not None else SessionConfig()
        self._emitter = emitter if emitter is not None else EventEmitter()
        self._registry = ParticipantRegistry()
        self._monitor = VolumeMonitor(self._registry, threshold=self._config.speaking_threshold)
        self._loop = asyncio.get_running_loop()
        self._event_tasks: set[asyncio.Task[None]] = set()
        self._remove_transport_listener: Callable[[], None] | None = (
            transport.add_event_listener(self._on_transport_event)
        )
        logger.debug(
            "SessionController initialized: room=%s, threshold=%d",
            self._config.room_id,
            self._config.speaking_threshold,
        )

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def room_id(self) -> str | None:
        """Room of the current session, None while idle."""
        return self._room_id

    @property
    def local_id(self) -> ParticipantId | None:
        """Local participant ID of the current session, None while idle."""
        return self._local_id

    @property
    def config(self) -> SessionConfig:
        """Configuration this controller was created with."""
        return self._config

    @property
    def emitter(self) -> EventEmitter:
        """Emitter the session events are reported through."""
        return self._emitter

    @property
    def registry(self) -> ParticipantRegistry:
        """The roster. Read it, do not modify it."""
        return self._registry

    @property
    def participants(self) -> tuple[Participant, ...]:
        """Snapshot of the roster."""
        return self._registry.all()

    @property
    def holds_microphone(self) -> bool:
        """Whether the local microphone track is currently held."""
        return self._microphone is not None

    def on(
        self, event_type: SessionEventType, handler: SessionEventHandler
    ) -> Callable[[], None]:
        """Register a session event handler, see EventEmitter.on()."""
        return self._emitter.on(event_type, handler)

    async def enter(self, room_id: str | None = None) -> bool:
        """
        Join a room and publish the microphone.

        Steps run in order: transport join, microphone acquisition, publish,
        registration of the local participant. When a step fails, completed steps
        are rolled back, a single session-error event is emitted and the session
        is idle again. A leave() issued while this is running cancels it the same
        way, without a session-error event.

        Args:
            room_id: Room to join. Defaults to the configured room.

        Returns:
            True if the session is now in the room, False if it failed or was
            cancelled.

        Raises:
            AlreadyActiveError: If the session is not idle.
            ValueError: If room_id is an empty string.
            RuntimeError: If the controller was closed.
        """
        if self._closed:
            raise RuntimeError("SessionController is closed")
        if self._state != SessionState.IDLE:
            raise AlreadyActiveError(f"Cannot enter a room while {self._state.value}")
        if room_id is None:
            room_id = self._config.room_id
        elif not room_id:
            raise ValueError("room_id must not be empty")

        local_id = self._config.local_id
        if local_id is None:
            local_id = generate_local_id()

        self._generation += 1
        self._state = SessionState.JOINING
        self._room_id = room_id
        self._local_id = local_id
        self._cancel_requested = False
        self._cancel_error = None
        done = self._transition_done = asyncio.Event()
        logger.info("Entering room %s as %s", room_id, local_id)

        try:
            await self._run_enter_steps(room_id, local_id)
        except _EnterCancelled:
            logger.info("Entering room %s was cancelled", room_id)
            error = self._cancel_error
            await self._release_session_resources(report_failures=False)
            self._reset()
            if error is not None:
                self._report_error(error)
            return False
        except VoiceRoomError as err:
            logger.warning("Entering room %s failed: %s", room_id, err)
            await self._release_session_resources(report_failures=False)
            self._reset()
            self._report_error(err)
            return False
        except asyncio.CancelledError:
            await self._release_session_resources(report_failures=False)
            self._reset()
            raise
        finally:
            done.set()

        logger.info("Entered room %s", room_id)
        self._emit(ParticipantAddedEvent(participant_id=local_id, is_local=True))
        return True

    async def _run_enter_steps(self, room_id: str, local_id: ParticipantId) -> None:
        """Join, acquire and publish the microphone, then register ourselves."""
        try:
            self._transport.enable_volume_indicator(self._config.volume_sample_interval_ms)
            await self._transport.join(self._config.app_id, room_id, self._config.token, local_id)
        except Exception as err:
            raise TransportJoinError(f"Failed to join room {room_id}: {err}") from err
        self._joined = True
        self._raise_if_cancelled()

        try:
            microphone = await self._transport.create_microphone_track()
        except Exception as err:
            raise DeviceUnavailableError(f"Microphone unavailable: {err}") from err
        self._microphone = microphone
        self._raise_if_cancelled()

        try:
            await self._transport.publish(microphone)
        except Exception as err:
            raise TransportPublishError(f"Failed to publish microphone: {err}") from err
        self._published = True
        self._raise_if_cancelled()

        self._registry.add(local_id, is_local=True)
        self._state = SessionState.IN_ROOM

    def _raise_if_cancelled(self) -> None:
        if self._cancel_requested:
            raise _EnterCancelled

    async def leave(self) -> None:
        """
        Leave the room and release all resources.

        Calling this while idle does nothing. While enter() is still running,
        this cancels it and returns once it has rolled back. While another leave
        is in progress, this waits for it to finish.
        """
        if self._state == SessionState.IDLE:
            logger.debug("leave() while idle, nothing to do")
            return
        if self._state in (SessionState.JOINING, SessionState.LEAVING):
            if self._state == SessionState.JOINING:
                logger.debug("leave() while joining, cancelling enter()")
                self._cancel_requested = True
            if self._transition_done is not None:
                await self._transition_done.wait()
            return
        await self._teardown()

    async def close(self) -> None:
        """
        Leave the room and stop listening to transport events.

        The controller cannot enter a room again afterwards.
        """
        self._closed = True
        await self.leave()
        if self._remove_transport_listener is not None:
            self._remove_transport_listener()
            self._remove_transport_listener = None
        tasks = list(self._event_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _teardown(self, *, error: VoiceRoomError | None = None) -> None:
        """
        Leave the in-room state.

        Releases the microphone, unpublishes, leaves the channel and clears the
        roster with the local participant removed last. When ``error`` is given
        the connection is already gone: transport failures are only logged and
        ``error`` is reported once the session is idle.
        """
        self._state = SessionState.LEAVING
        done = self._transition_done = asyncio.Event()
        logger.info("Leaving room %s", self._room_id)
        try:
            await self._release_session_resources(report_failures=error is None)
        finally:
            local: Participant | None = None
            for participant in self._registry.all():
                if participant.is_local:
                    local = participant
                    continue
                self._remove_participant(participant.participant_id)
            if local is not None:
                self._remove_participant(local.participant_id)
            self._reset()
            done.set()
        logger.info("Left room")
        if error is not None:
            self._report_error(error)

    async def _release_session_resources(self, *, report_failures: bool) -> None:
        """Release the microphone, unpublish and leave, as far as each was done."""
        microphone = self._microphone
        self._microphone = None
        if microphone is not None:
            release_track(microphone)

        if self._published:
            self._published = False
            try:
                await self._transport.unpublish()
            except Exception as err:
                self._handle_teardown_failure(
                    TransportLeaveError(f"Failed to unpublish: {err}"), report_failures
                )

        if self._joined:
            self._joined = False
            try:
                await self._transport.leave()
            except Exception as err:
                self._handle_teardown_failure(
                    TransportLeaveError(f"Failed to leave room: {err}"), report_failures
                )

    def _handle_teardown_failure(self, err: VoiceRoomError, report: bool) -> None:  # noqa: FBT001
        if report:
            self._report_error(err)
        else:
            logger.debug("Ignoring teardown failure: %s", err)

    def _reset(self) -> None:
        """Return to idle. The roster must already be empty."""
        self._state = SessionState.IDLE
        self._room_id = None
        self._local_id = None
        self._cancel_requested = False
        self._cancel_error = None

    def _on_transport_event(self, event: TransportEvent) -> None:
        """Schedule handling of a transport event as its own task."""
        task = self._loop.create_task(self.handle_event(event))
        self._event_tasks.add(task)
        task.add_done_callback(self._event_tasks.discard)

    async def handle_event(self, event: TransportEvent) -> None:
        """Handle a single transport event. Never raises."""
        try:
            if isinstance(event, UserJoinedEvent):
                self._handle_user_joined(event.participant_id)
            elif isinstance(event, UserPublishedEvent):
                await self._handle_user_published(event.participant_id, event.media_kind)
            elif isinstance(event, UserLeftEvent):
                self._handle_user_left(event.participant_id)
            elif isinstance(event, VolumeIndicatorEvent):
                self._handle_volume_batch(event.samples)
            elif isinstance(event, ConnectionLostEvent):
                await self._handle_connection_lost(event.reason)
            else:
                logger.debug("Unhandled transport event type: %s", type(event).__name__)
        except Exception:
            logger.exception("Error while handling transport event %s", event)

    def _handle_user_joined(self, participant_id: ParticipantId) -> None:
        if self._state != SessionState.IN_ROOM:
            logger.debug("Ignoring join of %s while %s", participant_id, self._state.value)
            return
        if participant_id in self._registry:
            logger.debug("Ignoring duplicate join of %s", participant_id)
            return
        self._registry.add(participant_id)
        self._emit(ParticipantAddedEvent(participant_id=participant_id))

    async def _handle_user_published(
        self, participant_id: ParticipantId, media_kind: MediaKind
    ) -> None:
        if self._state != SessionState.IN_ROOM:
            logger.debug("Ignoring publish of %s while %s", participant_id, self._state.value)
            return
        if media_kind != MediaKind.AUDIO:
            logger.debug("Ignoring %s track published by %s", media_kind.value, participant_id)
            return
        participant = self._registry.get(participant_id)
        if participant is None or participant.is_local:
            logger.warning("Ignoring publish of unknown participant %s", participant_id)
            return

        generation = self._generation
        try:
            track = await self._transport.subscribe(participant_id, media_kind)
        except Exception as err:
            if self._is_stale(generation, participant_id, participant):
                logger.debug("Ignoring failed subscribe to departed %s: %s", participant_id, err)
                return
            self._report_error(
                SubscribeError(
                    f"Failed to subscribe to {participant_id}: {err}",
                    participant_id=participant_id,
                )
            )
            return

        # The participant or the whole session may be gone by now
        if self._is_stale(generation, participant_id, participant):
            logger.debug("Releasing stale audio track of %s", participant_id)
            release_track(track)
            return

        self._registry.attach_track(participant_id, track)
        try:
            track.play()
        except Exception as err:
            self._report_error(
                SubscribeError(
                    f"Failed to play audio of {participant_id}: {err}",
                    participant_id=participant_id,
                )
            )

    def _is_stale(
        self, generation: int, participant_id: ParticipantId, participant: Participant
    ) -> bool:
        """Whether the session or the participant changed since ``generation``."""
        return (
            self._state != SessionState.IN_ROOM
            or self._generation != generation
            or self._registry.get(participant_id) is not participant
        )

    def _handle_user_left(self, participant_id: ParticipantId) -> None:
        participant = self._registry.get(participant_id)
        if participant is None:
            logger.debug("Ignoring leave of unknown participant %s", participant_id)
            return
        if participant.is_local:
            logger.warning("Ignoring transport leave event for the local participant")
            return
        self._remove_participant(participant_id)

    def _handle_volume_batch(self, samples: Sequence[VolumeSample]) -> None:
        if self._state not in (SessionState.IN_ROOM, SessionState.LEAVING):
            return
        for change in self._monitor.ingest(samples):
            self._emit(
                SpeakingChangedEvent(participant_id=change.participant_id, speaking=change.speaking)
            )

    async def _handle_connection_lost(self, reason: str | None) -> None:
        error = ConnectionLostError(f"Connection lost: {reason or 'unknown reason'}")
        if self._state == SessionState.JOINING:
            logger.warning("Connection lost while joining: %s", reason)
            self._cancel_requested = True
            self._cancel_error = error
        elif self._state == SessionState.IN_ROOM:
            logger.warning("Connection lost while in room: %s", reason)
            await self._teardown(error=error)
        else:
            logger.debug("Ignoring connection loss while %s", self._state.value)

    def _remove_participant(self, participant_id: ParticipantId) -> None:
        if self._registry.remove(participant_id) is not None:
            self._emit(ParticipantRemovedEvent(participant_id=participant_id))

    def _report_error(self, err: VoiceRoomError) -> None:
        logger.warning("Session error (%s): %s", err.kind.value, err)
        self._emit(
            SessionErrorEvent(kind=err.kind, detail=str(err), participant_id=err.participant_id)
        )

    def _emit(self, event: SessionEvent) -> None:
        event_type = EVENT_TYPES[type(event)]
        failures = self._emitter.emit(event_type, event)
        if failures:
            logger.warning("%d %s handler(s) failed", failures, event_type.value)
