"""Tests for the register catalog."""

from __future__ import annotations

import pytest

from mystiebel_core.models import FieldUpdate
from mystiebel_core.registers import (
    ESSENTIAL_CONTROLS,
    ESSENTIAL_SENSORS,
    RegisterCatalog,
    RegisterDefinition,
    RegisterType,
    encode_value,
    normalize_value,
)

NUMBER = RegisterDefinition(13, "setpoint_comfort", "Setpoint")
BOOLEAN = RegisterDefinition(1111, "compressor", "Compressor", RegisterType.BOOLEAN)
TEXT = RegisterDefinition(2758, "operating_mode", "Operating Mode", RegisterType.TEXT)


class TestRegisterCatalog:
    """Tests for RegisterCatalog lookups."""

    def test_essential(self):
        """Test the essential catalog covers sensors and controls."""
        catalog = RegisterCatalog.essential()

        assert len(catalog) == len(ESSENTIAL_SENSORS) + len(ESSENTIAL_CONTROLS)
        assert catalog.monitored_registers()[:2] == [15, 2378]
        assert 13 in catalog
        assert catalog.get(15).key == "dome_temperature"
        assert catalog.by_key("eco_heating_mode").writable
        assert catalog.get(4242) is None

    def test_duplicates_rejected(self):
        """Test duplicate indexes and keys are rejected."""
        with pytest.raises(ValueError, match="index"):
            RegisterCatalog([NUMBER, RegisterDefinition(13, "other", "Other")])
        with pytest.raises(ValueError, match="key"):
            RegisterCatalog([NUMBER, RegisterDefinition(14, "setpoint_comfort", "Other")])

    def test_normalize(self):
        """Test a batch is keyed and typed, unknown registers dropped."""
        catalog = RegisterCatalog.essential()

        values = catalog.normalize(
            [
                FieldUpdate(15, "48.5"),
                FieldUpdate(1111, "1"),
                FieldUpdate(2758, 3),
                FieldUpdate(4242, "x"),
                FieldUpdate(13, "n/a"),
            ]
        )

        assert values == {"dome_temperature": 48.5, "compressor": True, "operating_mode": "3"}


class TestValueConversion:
    """Tests for normalize_value() and encode_value()."""

    @pytest.mark.parametrize(
        ("definition", "raw", "expected"),
        [
            (NUMBER, "52", 52.0),
            (NUMBER, 48.5, 48.5),
            (NUMBER, "warm", None),
            (BOOLEAN, True, True),
            (BOOLEAN, 0, False),
            (BOOLEAN, " On ", True),
            (BOOLEAN, "0", False),
            (TEXT, 2, "2"),
            (TEXT, None, None),
        ],
    )
    def test_normalize_value(self, definition, raw, expected):
        """Test wire values convert per register type."""
        assert normalize_value(definition, raw) == expected

    @pytest.mark.parametrize(
        ("definition", "value", "expected"),
        [
            (NUMBER, 52.0, "52"),
            (NUMBER, 52.5, "52.5"),
            (BOOLEAN, True, "1"),
            (BOOLEAN, "off", "0"),
            (TEXT, "eco", "eco"),
        ],
    )
    def test_encode_value(self, definition, value, expected):
        """Test write values encode to strings."""
        assert encode_value(definition, value) == expected
