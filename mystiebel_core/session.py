"""Realtime session with a MyStiebel installation.

This module drives the authenticated WebSocket session for one installation:
- Token retrieval and login handshake
- Initial value fetch and push subscription
- Write requests for control registers
- Reconnect with exponential backoff

The lifecycle itself is computed by :func:`~mystiebel_core.state_machine.transition`;
the session only performs the resulting effects.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .auth import TokenManager
from .backoff import ReconnectPolicy
from .config import SessionOptions
from .const import APP_NAME, APP_VERSION
from .errors import (
    MyStiebelAuthError,
    MyStiebelClientError,
    MyStiebelProtocolError,
    MyStiebelTransportError,
)
from .ids import CorrelationIdAllocator
from .models import FieldUpdate
from .protocol import (
    build_get_values,
    build_login,
    build_set_values,
    build_subscribe,
    decode_frame,
)
from .state_machine import (
    CancelReconnect,
    CloseTransport,
    DeliverBatch,
    Effect,
    Event,
    OpenTransport,
    ReconnectDue,
    ResetBackoff,
    ScheduleReconnect,
    SendFetch,
    SendLogin,
    SendSubscribe,
    SessionState,
    Start,
    Stop,
    TransportLost,
    TransportOpened,
    transition,
)
from .transport import MyStiebelWsClient, MyStiebelWsMessageType, Transport

_LOGGER = logging.getLogger(__name__)

FieldSink = Callable[[list[FieldUpdate]], Awaitable[None] | None]


class ProtocolSession:
    """Realtime session for a single installation.

    Usage:
        session = ProtocolSession(tokens, "12345", "client-uuid", [13, 15], on_values)
        await session.start()
        await session.set_value(13, 52)
        await session.stop()

    A stopped session cannot be started again; create a new instance instead.
    """

    def __init__(
        self,
        tokens: TokenManager,
        installation_id: str,
        client_id: str,
        registers: Sequence[int],
        sink: FieldSink,
        *,
        options: SessionOptions | None = None,
        transport_factory: Callable[[], Transport] = MyStiebelWsClient,
        allocator: CorrelationIdAllocator | None = None,
        policy: ReconnectPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize session.

        Args:
            tokens: Token manager providing the bearer token
            installation_id: Installation to connect to
            client_id: Client identifier sent with write requests
            registers: Register indexes to fetch and subscribe to
            sink: Receives one batch per data-bearing inbound frame
            options: Session tunables
            transport_factory: Creates a fresh transport per connection attempt
            allocator: Correlation id source
            policy: Reconnect backoff policy
            sleep: Awaitable used for the backoff wait
        """
        if not registers:
            raise ValueError("At least one register must be monitored")

        self.installation_id = installation_id
        self.client_id = client_id
        self.registers: tuple[int, ...] = tuple(registers)

        self._tokens = tokens
        self._sink = sink
        self._options = options or SessionOptions()
        self._transport_factory = transport_factory
        self._ids = allocator or CorrelationIdAllocator()
        self._policy = policy or ReconnectPolicy(
            self._options.reconnect_initial, self._options.reconnect_max
        )
        self._sleep = sleep

        self._state = SessionState.IDLE
        self._stopped = False
        self._transport: Transport | None = None
        self._login_token: str | None = None

        self._connect_task: asyncio.Task[None] | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        """True once initial values were fetched and pushes are subscribed."""
        return self._state is SessionState.ACTIVE

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def reconnect_policy(self) -> ReconnectPolicy:
        return self._policy

    async def start(self) -> None:
        """Start connecting in the background.

        Connection problems never surface here; they are retried with backoff.

        Raises:
            MyStiebelClientError: If the session was stopped before
        """
        if self._stopped:
            raise MyStiebelClientError("Session was stopped; create a new session")
        if self._state is not SessionState.IDLE:
            _LOGGER.debug("[%s] Already started (%s)", self.installation_id, self._state.value)
            return
        _LOGGER.info("[%s] Starting realtime session", self.installation_id)
        await self._dispatch(Start())

    async def stop(self) -> None:
        """Close the session. Safe to call at any time; never raises."""
        if self._stopped:
            return
        _LOGGER.info("[%s] Stopping realtime session", self.installation_id)
        self._stopped = True

        try:
            await self._dispatch(Stop())
        except Exception as err:  # stop must not fail
            _LOGGER.warning("[%s] Error while stopping: %s", self.installation_id, err)

        current = asyncio.current_task()
        for task in (self._reconnect_task, self._connect_task, self._listen_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except BaseException:  # Task cancellation can raise various exceptions
                pass

        self._reconnect_task = None
        self._connect_task = None
        self._listen_task = None
        self._transport = None

    async def set_value(self, register_index: int, value: Any) -> bool:
        """Write ``value`` to a register.

        The write is only sent while a transport is open; otherwise it is
        dropped. The service confirms accepted writes with a push.

        Returns:
            True if the write frame was sent, False if it was dropped
        """
        if self._transport is None:
            _LOGGER.debug(
                "[%s] Dropping write to register %s: not connected",
                self.installation_id,
                register_index,
            )
            return False

        frame = build_set_values(
            msg_id=self._ids.allocate(long_form=True),
            installation_id=self.installation_id,
            client_id=self.client_id,
            register_index=register_index,
            value=value,
        )
        sent = await self._send(frame)
        if sent:
            _LOGGER.debug(
                "[%s] Write register %s = %s (id %s)",
                self.installation_id,
                register_index,
                value,
                frame["id"],
            )
        return sent

    async def handle_message(self, message: dict[str, Any]) -> None:
        """Process one decoded inbound frame."""
        if self._stopped:
            return
        try:
            event = decode_frame(message)
        except MyStiebelProtocolError as err:
            _LOGGER.warning("[%s] Invalid frame: %s", self.installation_id, err)
            return
        if event is None:
            _LOGGER.debug("[%s] Ignoring frame id=%s", self.installation_id, message.get("id"))
            return
        await self._dispatch(event)

    # -------------------------------------------------------------------------
    # Internal: State Machine
    # -------------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        """Apply ``event`` and carry out the resulting effects."""
        if self._stopped and not isinstance(event, Stop):
            return

        result = transition(self._state, event)
        if result.state is self._state and not result.changed:
            _LOGGER.debug(
                "[%s] %s ignored in state %s",
                self.installation_id,
                type(event).__name__,
                self._state.value,
            )
            return

        self._set_state(result.state)
        for effect in result.effects:
            await self._apply(effect)

    def _set_state(self, state: SessionState) -> None:
        if self._state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s", self.installation_id, self._state.value, state.value
            )
            self._state = state

    async def _apply(self, effect: Effect) -> None:
        if isinstance(effect, OpenTransport):
            self._connect_task = asyncio.create_task(self._connect())
        elif isinstance(effect, SendLogin):
            if self._login_token is not None:
                await self._send(
                    build_login(installation_id=self.installation_id, token=self._login_token)
                )
                _LOGGER.debug("[%s] Login sent", self.installation_id)
        elif isinstance(effect, SendFetch):
            await self._send(
                build_get_values(
                    msg_id=self._ids.allocate(),
                    installation_id=self.installation_id,
                    registers=self.registers,
                )
            )
        elif isinstance(effect, SendSubscribe):
            await self._send(
                build_subscribe(
                    msg_id=self._ids.allocate(),
                    installation_id=self.installation_id,
                    registers=self.registers,
                )
            )
        elif isinstance(effect, DeliverBatch):
            await self._deliver(list(effect.fields))
        elif isinstance(effect, ResetBackoff):
            self._policy.reset()
            _LOGGER.info("[%s] Session active", self.installation_id)
        elif isinstance(effect, ScheduleReconnect):
            self._schedule_reconnect()
        elif isinstance(effect, CloseTransport):
            await self._close_transport()
        elif isinstance(effect, CancelReconnect):
            if self._reconnect_task is not None:
                self._reconnect_task.cancel()

    # -------------------------------------------------------------------------
    # Internal: Connection
    # -------------------------------------------------------------------------

    async def _connect(self) -> None:
        """Obtain a token and open a transport."""
        _LOGGER.info(
            "[%s] Connecting to %s (attempt #%d)",
            self.installation_id,
            self._options.ws_url,
            self._policy.failures + 1,
        )
        try:
            transport = self._transport_factory()
            await self._tokens.ensure_valid()
            token = self._tokens.token
            if not token:
                raise MyStiebelAuthError("No token available")
            await transport.connect(
                self._options.ws_url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "X-SC-ClientApp-Name": APP_NAME,
                    "X-SC-ClientApp-Version": APP_VERSION,
                },
                ping_interval=self._options.ping_interval,
                timeout=self._options.connect_timeout,
            )
        except MyStiebelAuthError as err:
            _LOGGER.error("[%s] Authentication failed: %s", self.installation_id, err)
            await self._dispatch(TransportLost(str(err)))
            return
        except MyStiebelTransportError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self.installation_id, err)
            await self._dispatch(TransportLost(str(err)))
            return
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected connect error: %s", self.installation_id, err)
            await self._dispatch(TransportLost(str(err)))
            return

        if self._stopped:
            await transport.close()
            return

        _LOGGER.info("[%s] WebSocket connected", self.installation_id)
        self._transport = transport
        self._login_token = token
        self._listen_task = asyncio.create_task(self._listen(transport))
        await self._dispatch(TransportOpened())

    async def _close_transport(self) -> None:
        transport = self._transport
        if transport is None:
            return
        try:
            await asyncio.wait_for(transport.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("[%s] WebSocket close timed out", self.installation_id)
        except MyStiebelClientError as err:
            _LOGGER.debug("[%s] WebSocket close failed: %s", self.installation_id, err)

    def _schedule_reconnect(self) -> None:
        """Schedule the next connection attempt after the backoff delay."""
        if self._stopped or self._reconnect_task is not None:
            return
        delay = self._policy.next_delay()
        _LOGGER.info(
            "[%s] Reconnecting in %ss (failure %d)",
            self.installation_id,
            delay,
            self._policy.failures,
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay(delay))

    async def _reconnect_after_delay(self, delay: float) -> None:
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Reconnect cancelled", self.installation_id)
            self._reconnect_task = None
            raise
        self._reconnect_task = None
        await self._dispatch(ReconnectDue())

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, transport: Transport) -> None:
        """Read frames until the transport goes away."""
        message_count = 0
        reason: str | None = None
        reconnect_required = False

        try:
            async for msg in transport:
                if self._stopped:
                    return
                message_count += 1

                if msg.type is MyStiebelWsMessageType.TEXT:
                    try:
                        data = MyStiebelWsClient.decode_json(msg)
                    except MyStiebelProtocolError as err:
                        _LOGGER.warning("[%s] Invalid message: %s", self.installation_id, err)
                        continue
                    await self.handle_message(data)

                elif msg.type is MyStiebelWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed", self.installation_id)
                    reason = "closed"
                    reconnect_required = True
                    break

                elif msg.type is MyStiebelWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self.installation_id)
                    reason = "error"
                    reconnect_required = True
                    break
            else:
                reason = "stream ended"
                reconnect_required = True

        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self.installation_id, message_count
            )
            raise
        except MyStiebelClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self.installation_id, err)
            reason = str(err)
            reconnect_required = True
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected error: %s", self.installation_id, err)
            reason = str(err)
            reconnect_required = True

        if reconnect_required and not self._stopped and self._transport is transport:
            self._transport = None
            self._login_token = None
            await self._dispatch(TransportLost(reason))

    # -------------------------------------------------------------------------
    # Internal: Outbound / Sink
    # -------------------------------------------------------------------------

    async def _send(self, frame: dict[str, Any]) -> bool:
        transport = self._transport
        if transport is None:
            _LOGGER.debug(
                "[%s] Not connected, dropping %s", self.installation_id, frame.get("method")
            )
            return False
        try:
            await transport.send_json(frame)
        except MyStiebelClientError as err:
            _LOGGER.warning(
                "[%s] Failed to send %s: %s", self.installation_id, frame.get("method"), err
            )
            return False
        return True

    async def _deliver(self, fields: list[FieldUpdate]) -> None:
        _LOGGER.debug("[%s] Delivering %d values", self.installation_id, len(fields))
        try:
            result = self._sink(fields)
            if inspect.isawaitable(result):
                await result
        except Exception as err:
            _LOGGER.exception("[%s] Value sink error: %s", self.installation_id, err)
