"""Realtime session state machine.

The session lifecycle is expressed as a pure function from the current
state and an event to the next state and the effects the session has to
carry out. :class:`~mystiebel_core.session.ProtocolSession` owns the I/O and
executes the effects; this module never touches the network.

    IDLE --Start--> CONNECTING --TransportOpened--> AWAITING_LOGIN_ACK
        --LoginAck(ok)--> FETCHING_INITIAL --FetchResult--> ACTIVE

Losing the transport in any connected state moves to CLOSED and schedules a
reconnect; ReconnectDue leaves CLOSED for CONNECTING again. Stop is accepted
everywhere and leads to CLOSED.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models import FieldUpdate


class SessionState(Enum):
    """Lifecycle state of a realtime session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_LOGIN_ACK = "awaiting_login_ack"
    FETCHING_INITIAL = "fetching_initial"
    ACTIVE = "active"
    CLOSED = "closed"


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Start:
    """Caller asked the session to start."""


@dataclass(frozen=True)
class TransportOpened:
    """The transport is connected."""


@dataclass(frozen=True)
class LoginAck:
    """Service answered the login frame."""

    success: bool


@dataclass(frozen=True)
class FetchResult:
    """Service answered the bulk value request."""

    fields: tuple[FieldUpdate, ...]


@dataclass(frozen=True)
class Push:
    """Service pushed a changed value."""

    field: FieldUpdate


@dataclass(frozen=True)
class TransportLost:
    """Connecting failed or the open transport went away."""

    reason: str | None = None


@dataclass(frozen=True)
class ReconnectDue:
    """Backoff delay elapsed."""


@dataclass(frozen=True)
class Stop:
    """Caller asked the session to stop."""


Event = Start | TransportOpened | LoginAck | FetchResult | Push | TransportLost | ReconnectDue | Stop


# -----------------------------------------------------------------------------
# Effects
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class OpenTransport:
    """Obtain a token and open a new transport."""


@dataclass(frozen=True)
class SendLogin:
    """Send the login frame with the bearer token."""


@dataclass(frozen=True)
class SendFetch:
    """Request current values of all monitored registers."""


@dataclass(frozen=True)
class SendSubscribe:
    """Subscribe to changes of all monitored registers."""


@dataclass(frozen=True)
class DeliverBatch:
    """Hand a batch of values to the sink."""

    fields: tuple[FieldUpdate, ...]


@dataclass(frozen=True)
class ResetBackoff:
    """Session is established; restart backoff from its floor."""


@dataclass(frozen=True)
class ScheduleReconnect:
    """Start the backoff timer for the next connection attempt."""


@dataclass(frozen=True)
class CloseTransport:
    """Close the current transport, if any."""


@dataclass(frozen=True)
class CancelReconnect:
    """Cancel a pending backoff timer, if any."""


Effect = (
    OpenTransport
    | SendLogin
    | SendFetch
    | SendSubscribe
    | DeliverBatch
    | ResetBackoff
    | ScheduleReconnect
    | CloseTransport
    | CancelReconnect
)


@dataclass(frozen=True)
class Transition:
    """Outcome of applying an event to a state."""

    state: SessionState
    effects: tuple[Effect, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.effects)


_CONNECTED_STATES = frozenset(
    {
        SessionState.CONNECTING,
        SessionState.AWAITING_LOGIN_ACK,
        SessionState.FETCHING_INITIAL,
        SessionState.ACTIVE,
    }
)


def transition(state: SessionState, event: Event) -> Transition:
    """Compute the next state and effects for ``event`` in ``state``.

    Events that are not meaningful in ``state`` yield an unchanged state and
    no effects.
    """
    if isinstance(event, Stop):
        return Transition(SessionState.CLOSED, (CloseTransport(), CancelReconnect()))

    if isinstance(event, TransportLost):
        if state in _CONNECTED_STATES:
            return Transition(SessionState.CLOSED, (ScheduleReconnect(),))
        return Transition(state)

    if state is SessionState.IDLE and isinstance(event, Start):
        return Transition(SessionState.CONNECTING, (OpenTransport(),))

    if state is SessionState.CLOSED and isinstance(event, ReconnectDue):
        return Transition(SessionState.CONNECTING, (OpenTransport(),))

    if state is SessionState.CONNECTING and isinstance(event, TransportOpened):
        return Transition(SessionState.AWAITING_LOGIN_ACK, (SendLogin(),))

    if state is SessionState.AWAITING_LOGIN_ACK and isinstance(event, LoginAck):
        if event.success:
            return Transition(SessionState.FETCHING_INITIAL, (SendFetch(),))
        # The close is observed as TransportLost, which schedules the retry.
        return Transition(state, (CloseTransport(),))

    if state is SessionState.FETCHING_INITIAL and isinstance(event, FetchResult):
        effects: tuple[Effect, ...] = (SendSubscribe(), ResetBackoff())
        if event.fields:
            effects = (DeliverBatch(event.fields), *effects)
        return Transition(SessionState.ACTIVE, effects)

    if state is SessionState.ACTIVE and isinstance(event, Push):
        return Transition(state, (DeliverBatch((event.field,)),))

    return Transition(state)
