"""Register catalog for MyStiebel heat pumps.

The realtime protocol reports every value loosely typed: numbers may arrive
as strings, booleans as ``"0"``/``"1"``. Values are converted once, at the
boundary to the application, using the type declared here for each register.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .models import FieldUpdate, FieldValue

_LOGGER = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "on"})


class RegisterType(Enum):
    """Value type of a register."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"


@dataclass(frozen=True)
class RegisterDefinition:
    """Metadata for a single register."""

    index: int
    key: str
    name: str
    type: RegisterType = RegisterType.NUMBER
    unit: str | None = None
    writable: bool = False


ESSENTIAL_SENSORS: tuple[RegisterDefinition, ...] = (
    RegisterDefinition(15, "dome_temperature", "Dome Temperature", unit="°C"),
    RegisterDefinition(2378, "current_target_temperature", "Current Target Temperature", unit="°C"),
    RegisterDefinition(2395, "mixed_water_volume", "Mixed Water Volume", unit="L"),
    RegisterDefinition(2758, "operating_mode", "Operating Mode", RegisterType.TEXT),
    RegisterDefinition(2388, "sg_ready_state", "SG-Ready State", RegisterType.TEXT),
    RegisterDefinition(1111, "compressor", "Compressor", RegisterType.BOOLEAN),
    RegisterDefinition(1116, "heating_element", "Heating Element", RegisterType.BOOLEAN),
    RegisterDefinition(1130, "defrosting", "Defrosting", RegisterType.BOOLEAN),
)

ESSENTIAL_CONTROLS: tuple[RegisterDefinition, ...] = (
    RegisterDefinition(
        13, "setpoint_comfort", "Setpoint Temperature Comfort", unit="°C", writable=True
    ),
    RegisterDefinition(14, "setpoint_eco", "Setpoint Temperature Eco", unit="°C", writable=True),
    RegisterDefinition(
        2466, "eco_heating_mode", "Eco Heating Mode", RegisterType.BOOLEAN, writable=True
    ),
    RegisterDefinition(2382, "boost_request", "Boost Request", writable=True),
    RegisterDefinition(
        2487, "hot_water_plus", "Hot Water Plus Requested", RegisterType.BOOLEAN, writable=True
    ),
)


class RegisterCatalog:
    """Lookup of register definitions by index and by key."""

    def __init__(self, definitions: Iterable[RegisterDefinition]) -> None:
        self._by_index: dict[int, RegisterDefinition] = {}
        self._by_key: dict[str, RegisterDefinition] = {}
        for definition in definitions:
            if definition.index in self._by_index:
                raise ValueError(f"Duplicate register index {definition.index}")
            if definition.key in self._by_key:
                raise ValueError(f"Duplicate register key {definition.key}")
            self._by_index[definition.index] = definition
            self._by_key[definition.key] = definition

    @classmethod
    def essential(cls) -> RegisterCatalog:
        return cls((*ESSENTIAL_SENSORS, *ESSENTIAL_CONTROLS))

    def __len__(self) -> int:
        return len(self._by_index)

    def __contains__(self, index: object) -> bool:
        return index in self._by_index

    def get(self, index: int) -> RegisterDefinition | None:
        return self._by_index.get(index)

    def by_key(self, key: str) -> RegisterDefinition | None:
        return self._by_key.get(key)

    def monitored_registers(self) -> list[int]:
        """Register indexes to fetch and subscribe to, in catalog order."""
        return list(self._by_index)

    def normalize(self, updates: Iterable[FieldUpdate]) -> dict[str, FieldValue]:
        """Convert a batch into ``{register key: typed value}``.

        Registers missing from the catalog and values that cannot be
        converted are left out.
        """
        result: dict[str, FieldValue] = {}
        for update in updates:
            definition = self._by_index.get(update.register_index)
            if definition is None:
                continue
            value = normalize_value(definition, update.value)
            if value is None:
                _LOGGER.debug(
                    "Dropping unparsable value %r for register %d",
                    update.value,
                    update.register_index,
                )
                continue
            result[definition.key] = value
        return result


def normalize_value(definition: RegisterDefinition, raw: Any) -> FieldValue | None:
    """Convert a wire value according to the register type."""
    if raw is None:
        return None
    if definition.type is RegisterType.NUMBER:
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None
    if definition.type is RegisterType.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            return raw == 1
        return str(raw).strip().lower() in _TRUE_VALUES
    return str(raw)


def encode_value(definition: RegisterDefinition, value: Any) -> str:
    """Encode a value for a write request."""
    if definition.type is RegisterType.BOOLEAN:
        if isinstance(value, str):
            return "1" if value.strip().lower() in _TRUE_VALUES else "0"
        return "1" if value else "0"
    if definition.type is RegisterType.NUMBER:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)
