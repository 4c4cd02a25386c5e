"""Records and attribute spaces consumed by every dominance backend.

A ``Record`` carries a unique id, a display name and a mapping of
attribute key to numeric value (already oriented higher-is-better).
An ``AttributeSpace`` is the ordered, immutable set of ``AttributeConfig``
entries that participate in one computation call.  The order of the space
is the order dominance is evaluated in and the column order of the
parallel wire buffer; it is chosen by the caller, never by the catalog.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_NAME_KEYS = ("name", "short_name", "long_name", "player_name", "player", "city")


def _coerce_number(value: object) -> float:
    """Coerce a raw cell to float; non-numeric, missing and NaN read as 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Record:
    """A single multi-dimensional data point.

    Attributes:
        id: Identifier, unique within one computation call.
        name: Display name.
        values: Attribute key -> numeric value.
    """

    id: str
    name: str
    values: Mapping[str, float] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash((self.id, self.name, tuple(sorted(self.values.items()))))

    def value(self, key: str) -> float:
        """Value for *key*, with missing and NaN entries read as ``0.0``."""
        return _coerce_number(self.values.get(key, 0.0))

    @classmethod
    def from_mapping(cls, row: Mapping[str, object], index: int, keys: Iterable[str]) -> Record:
        """Build a record from a raw row (e.g. one parsed CSV line).

        Args:
            row: Raw key -> cell mapping.
            index: Position of the row in its dataset, used for fallback ids.
            keys: Attribute keys to extract and coerce.

        Returns:
            A ``Record`` with numeric values for every key in *keys*.
        """
        raw_id = row.get("id")
        record_id = str(raw_id) if raw_id not in (None, "") else f"item-{index}"

        name = f"Item {index + 1}"
        for candidate in row:
            if candidate.lower() in _NAME_KEYS:
                name = str(row[candidate])
                break

        values = {key: _coerce_number(row.get(key)) for key in keys}
        return cls(id=record_id, name=name, values=values)


# ---------------------------------------------------------------------------
# AttributeConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeConfig:
    """Declared description of one attribute.

    Attributes:
        key: Attribute key looked up in ``Record.values``.
        label: Display label.
        min: Declared minimum over the full dataset.
        max: Declared maximum.  A range with ``max <= min`` is normalized
            to unit width (``max = min + 1``).
        weight: Carried for callers; not used by any backend.
        color: Display color (CSS string).
        angle: Angular position in radians, used only for color mapping.
    """

    key: str
    label: str = ""
    min: float = 0.0
    max: float = 1.0
    weight: float = 1.0
    color: str = "#94a3b8"
    angle: float = 0.0

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", _label_for(self.key))
        if not self.max > self.min:
            logger.debug(
                "Attribute %r has degenerate range [%s, %s]; using unit width",
                self.key,
                self.min,
                self.max,
            )
            object.__setattr__(self, "max", self.min + 1.0)

    @property
    def span(self) -> float:
        """Width of the declared range (always positive)."""
        return self.max - self.min


def _label_for(key: str) -> str:
    return key[:1].upper() + key[1:].replace("_", " ")


def _hsl_color(index: int, total: int) -> str:
    hue = index / total * 360
    return f"hsl({hue:g}, 70%, 50%)"


# ---------------------------------------------------------------------------
# AttributeSpace
# ---------------------------------------------------------------------------


class AttributeSpace(Sequence):
    """Ordered, immutable collection of active ``AttributeConfig`` entries.

    Args:
        attributes: Attribute configs in evaluation order.

    Example:
        >>> catalog = AttributeSpace(DEFAULT_PLAYER_ATTRIBUTES)
        >>> active = catalog.select(["shooting", "pace"])
        >>> active.keys
        ('shooting', 'pace')
    """

    def __init__(self, attributes: Iterable[AttributeConfig] = ()) -> None:
        self._attributes: tuple[AttributeConfig, ...] = tuple(attributes)
        keys = [a.key for a in self._attributes]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate attribute keys in {keys}")

    @property
    def keys(self) -> tuple[str, ...]:
        """Attribute keys in evaluation order."""
        return tuple(a.key for a in self._attributes)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return AttributeSpace(self._attributes[index])
        return self._attributes[index]

    def __len__(self) -> int:
        return len(self._attributes)

    def __iter__(self) -> Iterator[AttributeConfig]:
        return iter(self._attributes)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AttributeSpace):
            return self._attributes == other._attributes
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._attributes)

    def get(self, key: str) -> AttributeConfig | None:
        """Look up an attribute by key."""
        for attr in self._attributes:
            if attr.key == key:
                return attr
        return None

    def select(self, keys: Iterable[str]) -> AttributeSpace:
        """Active subset in the order of *keys* (not catalog order).

        Raises:
            ValueError: If a key is not part of this space.
        """
        selected = []
        for key in keys:
            attr = self.get(key)
            if attr is None:
                raise ValueError(f"Unknown attribute '{key}'. Available: {list(self.keys)}")
            selected.append(attr)
        return AttributeSpace(selected)

    @classmethod
    def from_records(cls, records: Sequence[Record], keys: Sequence[str]) -> AttributeSpace:
        """Derive attribute bounds, labels, colors and angles from a dataset.

        Bounds are computed over *all* given records; callers should pass
        the full dataset rather than a filtered view so that color mapping
        stays stable across filters.

        Args:
            records: Full record set.
            keys: Numeric attribute keys, in catalog order.

        Returns:
            An ``AttributeSpace`` with angles evenly spaced on the circle.
        """
        total = len(keys)
        attributes = []
        for index, key in enumerate(keys):
            values = [r.value(key) for r in records]
            low = min(values) if values else 0.0
            high = max(values) if values else 1.0
            attributes.append(
                AttributeConfig(
                    key=key,
                    label=_label_for(key),
                    min=low,
                    max=high,
                    weight=1.0,
                    color=_hsl_color(index, total),
                    angle=index / total * 2 * math.pi,
                )
            )
        logger.debug("Derived %d attributes from %d records", total, len(records))
        return cls(attributes)

    def __repr__(self) -> str:
        return f"AttributeSpace(keys={list(self.keys)})"


# Football player catalog (FIFA ratings dataset).
DEFAULT_PLAYER_ATTRIBUTES: tuple[AttributeConfig, ...] = (
    AttributeConfig("pace", "Pace", 40, 99, 1, "#ef4444", 0.0),
    AttributeConfig("shooting", "Shooting", 30, 99, 1, "#f97316", 1.05),
    AttributeConfig("passing", "Passing", 40, 99, 1, "#eab308", 2.09),
    AttributeConfig("dribbling", "Dribbling", 40, 99, 1, "#22c55e", 3.14),
    AttributeConfig("defending", "Defending", 20, 95, 1, "#3b82f6", 4.19),
    AttributeConfig("physical", "Physical", 30, 95, 1, "#a855f7", 5.24),
)
