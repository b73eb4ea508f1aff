"""Frame builders and decoding for the MyStiebel realtime protocol.

Frames are JSON-RPC 2.0 style objects. Requests carry an ``id`` used to
correlate the response; server pushes carry a ``method`` instead.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from .const import JSONRPC_VERSION, LOGIN_MSG_ID
from .errors import MyStiebelProtocolError
from .models import FieldUpdate, FieldValue
from .state_machine import Event, FetchResult, LoginAck, Push

_LOGGER = logging.getLogger(__name__)

METHOD_LOGIN = "Login"
METHOD_GET_VALUES = "getValues"
METHOD_SUBSCRIBE = "Subscribe"
METHOD_SET_VALUES = "setValues"
METHOD_VALUES_CHANGED = "valuesChanged"


def build_request(*, msg_id: int, method: str, params: dict[str, Any]) -> dict[str, Any]:
    """Build a request frame."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": msg_id,
        "method": method,
        "params": params,
    }


def build_login(*, installation_id: str, token: str) -> dict[str, Any]:
    """Build the login frame, correlated by the reserved login id."""
    return build_request(
        msg_id=LOGIN_MSG_ID,
        method=METHOD_LOGIN,
        params={"clientId": installation_id, "jwt": token},
    )


def build_get_values(
    *, msg_id: int, installation_id: str, registers: Sequence[int]
) -> dict[str, Any]:
    """Build the bulk value request for ``registers``."""
    return build_request(
        msg_id=msg_id,
        method=METHOD_GET_VALUES,
        params={"installationId": installation_id, "fields": list(registers)},
    )


def build_subscribe(
    *, msg_id: int, installation_id: str, registers: Sequence[int]
) -> dict[str, Any]:
    """Build the push subscription for ``registers``."""
    return build_request(
        msg_id=msg_id,
        method=METHOD_SUBSCRIBE,
        params={"installationId": installation_id, "registerIndexes": list(registers)},
    )


def build_set_values(
    *,
    msg_id: int,
    installation_id: str,
    client_id: str,
    register_index: int,
    value: Any,
) -> dict[str, Any]:
    """Build a write frame.

    The service confirms the write through a ``valuesChanged`` push.
    """
    return build_request(
        msg_id=msg_id,
        method=METHOD_SET_VALUES,
        params={
            "installationId": installation_id,
            "UUID": client_id,
            "listenWithValuesChanged": True,
            "fields": [{"registerIndex": register_index, "displayValue": str(value)}],
        },
    )


def _parse_register_index(raw: Any) -> int:
    if isinstance(raw, bool):
        raise MyStiebelProtocolError(f"Invalid registerIndex: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw)
    raise MyStiebelProtocolError(f"Invalid registerIndex: {raw!r}")


def parse_field(item: Any) -> FieldUpdate:
    """Parse a ``{registerIndex, value|displayValue}`` object.

    ``value`` wins over ``displayValue`` when both are present.

    Raises:
        MyStiebelProtocolError: If the object has no index or no value
    """
    if not isinstance(item, dict):
        raise MyStiebelProtocolError(f"Field entry is not an object: {item!r}")
    register_index = _parse_register_index(item.get("registerIndex"))

    value: FieldValue | None = item.get("value")
    if value is None:
        value = item.get("displayValue")
    if value is None:
        raise MyStiebelProtocolError(f"Register {register_index} carries no value")
    if not isinstance(value, (str, int, float, bool)):
        raise MyStiebelProtocolError(
            f"Register {register_index} has unsupported value type {type(value).__name__}"
        )
    return FieldUpdate(register_index, value)


def parse_fields(items: Iterable[Any]) -> tuple[FieldUpdate, ...]:
    """Parse a list of field objects, skipping malformed entries."""
    fields: list[FieldUpdate] = []
    for item in items:
        try:
            fields.append(parse_field(item))
        except MyStiebelProtocolError as err:
            _LOGGER.debug("Skipping field entry: %s", err)
    return tuple(fields)


def decode_frame(message: dict[str, Any]) -> Event | None:
    """Translate an inbound frame into a session event.

    Returns None for well-formed frames the session does not act on, such as
    acknowledgements of subscribe and write requests.

    Raises:
        MyStiebelProtocolError: If the frame is malformed or reports an error
    """
    if not isinstance(message, dict):
        raise MyStiebelProtocolError("Frame is not a JSON object")

    if "error" in message:
        raise MyStiebelProtocolError(
            f"Request {message.get('id')} failed: {message['error']}"
        )

    method = message.get("method")
    if method is not None:
        if method != METHOD_VALUES_CHANGED:
            _LOGGER.debug("Ignoring push method %s", method)
            return None
        params = message.get("params")
        if not params:
            raise MyStiebelProtocolError("valuesChanged without params")
        return Push(parse_field(params))

    if "result" not in message:
        raise MyStiebelProtocolError("Frame has neither method nor result")
    result = message["result"]

    if message.get("id") == LOGIN_MSG_ID and isinstance(result, bool):
        return LoginAck(success=result)

    if isinstance(result, dict) and "fields" in result:
        items = result["fields"]
        if not isinstance(items, list):
            raise MyStiebelProtocolError("result.fields is not a list")
        return FetchResult(parse_fields(items))

    return None
