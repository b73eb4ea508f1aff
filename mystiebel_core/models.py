"""Data structures exchanged with the MyStiebel service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FieldValue = str | int | float | bool


@dataclass(frozen=True, slots=True)
class FieldUpdate:
    """A register value reported by the device."""

    register_index: int
    value: FieldValue


@dataclass(frozen=True)
class Installation:
    """An installation (heat pump) visible to the account.

    Attributes:
        id: Installation identifier used by the realtime protocol.
        name: Display name.
        owner: Owner's full name, if known.
        model: Device profile name (e.g. "WWK").
        profile_id: Numeric device profile identifier.
        serial_number: Product identifier (``pid``).
        mac_address: MAC address of the internet gateway.
        firmware_version: Gateway firmware version.
        is_online: Whether the service currently sees the device.
    """

    id: str
    name: str
    owner: str | None = None
    model: str | None = None
    profile_id: int | None = None
    serial_number: str | None = None
    mac_address: str | None = None
    firmware_version: str | None = None
    is_online: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Installation:
        """Build an installation from a discovery record."""
        if "id" not in data or data["id"] is None:
            raise ValueError("Installation record has no id")
        installation_id = str(data["id"])

        owner_data = data.get("owner") or {}
        owner = " ".join(
            part for part in (owner_data.get("firstName"), owner_data.get("lastName")) if part
        )
        profile = data.get("profile") or {}
        firmware = data.get("firmware") or {}

        return cls(
            id=installation_id,
            name=data.get("name") or f"Installation {installation_id}",
            owner=owner or None,
            model=profile.get("name"),
            profile_id=profile.get("id"),
            serial_number=data.get("pid"),
            mac_address=data.get("macAddress"),
            firmware_version=firmware.get("firmwareVersion"),
            is_online=bool(data.get("isOnline", False)),
        )
