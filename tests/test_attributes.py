"""Tests for Record / AttributeConfig / AttributeSpace."""

import math

import pytest

from skylens.attributes import (
    DEFAULT_PLAYER_ATTRIBUTES,
    AttributeConfig,
    AttributeSpace,
    Record,
)


class TestAttributeConfig:
    """Test suite for single attribute descriptions."""

    def test_degenerate_range_gets_unit_width(self) -> None:
        """max <= min is normalized to max = min + 1."""
        attr = AttributeConfig("x", min=5.0, max=5.0)
        assert attr.max == 6.0
        assert attr.span == 1.0

        inverted = AttributeConfig("y", min=3.0, max=1.0)
        assert inverted.max == 4.0

    def test_default_label(self) -> None:
        """Missing labels are derived from the key."""
        assert AttributeConfig("shot_power").label == "Shot power"
        assert AttributeConfig("pace", "Speed").label == "Speed"


class TestRecord:
    """Test suite for records built from raw rows."""

    def test_from_mapping_coerces_values(self) -> None:
        """Numeric strings parse; junk, missing and NaN read as zero."""
        row = {"id": 7, "name": "Mo", "a": "3.5", "b": "n/a", "c": float("nan")}
        record = Record.from_mapping(row, 0, ["a", "b", "c", "d"])
        assert record.id == "7"
        assert record.name == "Mo"
        assert record.values == {"a": 3.5, "b": 0.0, "c": 0.0, "d": 0.0}

    def test_from_mapping_fallback_id_and_name(self) -> None:
        """Rows without id or name use positional fallbacks."""
        record = Record.from_mapping({"a": 1}, 4, ["a"])
        assert record.id == "item-4"
        assert record.name == "Item 5"

    def test_name_key_case_insensitive(self) -> None:
        """Known name columns are matched case-insensitively."""
        record = Record.from_mapping({"Short_Name": "Leo", "a": 1}, 0, ["a"])
        assert record.name == "Leo"

    def test_value_missing_key(self) -> None:
        """Missing attribute keys read as zero."""
        assert Record("r", "r", {}).value("pace") == 0.0

    def test_hashable(self) -> None:
        """Equal records hash equally and deduplicate in a set."""
        a = Record("r", "Rob", {"pace": 80.0, "shoot": 70.0})
        b = Record("r", "Rob", {"shoot": 70.0, "pace": 80.0})
        assert hash(a) == hash(b)
        assert len({a, b, Record("s", "Sam", {"pace": 80.0})}) == 2


class TestAttributeSpace:
    """Test suite for ordered attribute collections."""

    def test_select_uses_caller_order(self) -> None:
        """select returns the caller's order, not catalog order."""
        catalog = AttributeSpace(DEFAULT_PLAYER_ATTRIBUTES)
        active = catalog.select(["shooting", "pace"])
        assert active.keys == ("shooting", "pace")
        assert active[0] is catalog.get("shooting")

    def test_select_unknown_key_raises(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ValueError, match="Unknown attribute"):
            AttributeSpace(DEFAULT_PLAYER_ATTRIBUTES).select(["stamina"])

    def test_duplicate_keys_rejected(self) -> None:
        """Keys must be unique within a space."""
        with pytest.raises(ValueError, match="Duplicate"):
            AttributeSpace([AttributeConfig("a"), AttributeConfig("a")])

    def test_sequence_behaviour(self) -> None:
        """Spaces support len, slicing, equality and hashing."""
        space = AttributeSpace(DEFAULT_PLAYER_ATTRIBUTES)
        assert len(space) == 6
        assert isinstance(space[:2], AttributeSpace)
        assert space[:2].keys == ("pace", "shooting")
        assert space == AttributeSpace(DEFAULT_PLAYER_ATTRIBUTES)
        assert hash(space) == hash(AttributeSpace(DEFAULT_PLAYER_ATTRIBUTES))

    def test_from_records_bounds_and_angles(self) -> None:
        """Bounds come from the data; angles are evenly spaced."""
        records = [
            Record("a", "a", {"x": 1.0, "y": 4.0}),
            Record("b", "b", {"x": 3.0, "y": 4.0}),
        ]
        space = AttributeSpace.from_records(records, ["x", "y"])

        x, y = space
        assert (x.min, x.max) == (1.0, 3.0)
        # Constant column: degenerate range widened to unit width.
        assert (y.min, y.max) == (4.0, 5.0)
        assert x.angle == 0.0
        assert math.isclose(y.angle, math.pi)
        assert x.color == "hsl(0, 70%, 50%)"
        assert y.color == "hsl(180, 70%, 50%)"
        assert y.label == "Y"

    def test_from_records_empty_dataset(self) -> None:
        """An empty dataset yields unit ranges starting at zero."""
        (attr,) = AttributeSpace.from_records([], ["x"])
        assert (attr.min, attr.max) == (0.0, 1.0)
