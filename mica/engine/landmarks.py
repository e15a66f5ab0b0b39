"""Landmark types and landmark value objects. No curve imports."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Category(enum.Enum):
    POINT = "point"
    SLOPE_MINIMUM = "slope_minimum"
    SLOPE_MAXIMUM = "slope_maximum"
    INFLECTION_ASCENDING = "inflection_ascending"
    INFLECTION_DESCENDING = "inflection_descending"
    MINIMUM = "minimum"
    MAXIMUM = "maximum"
    START = "start"
    SPLIT = "split"
    END = "end"

    @property
    def rank(self) -> int:
        return _RANK[self]


# Ordering weight within one provenance; START and SPLIT share a rank.
_RANK: dict[Category, int] = {
    Category.POINT: 0,
    Category.SLOPE_MINIMUM: 1,
    Category.SLOPE_MAXIMUM: 2,
    Category.INFLECTION_ASCENDING: 3,
    Category.INFLECTION_DESCENDING: 4,
    Category.MINIMUM: 5,
    Category.MAXIMUM: 6,
    Category.START: 7,
    Category.SPLIT: 7,
    Category.END: 8,
}

_OPPOSITE: dict[Category, Category] = {
    Category.MAXIMUM: Category.MINIMUM,
    Category.MINIMUM: Category.MAXIMUM,
    Category.SLOPE_MAXIMUM: Category.SLOPE_MINIMUM,
    Category.SLOPE_MINIMUM: Category.SLOPE_MAXIMUM,
}

_SHORT: dict[Category, str] = {
    Category.MAXIMUM: "maxY",
    Category.MINIMUM: "minY",
    Category.INFLECTION_ASCENDING: "infA",
    Category.INFLECTION_DESCENDING: "infD",
    Category.SLOPE_MAXIMUM: "maxS",
    Category.SLOPE_MINIMUM: "minS",
}


class Provenance(enum.Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


@dataclass(frozen=True)
class LandmarkType:
    """A landmark category together with where it came from.

    Manual landmarks always order above automatic ones; within the same
    provenance the higher-ranked category wins.
    """

    category: Category
    provenance: Provenance = Provenance.AUTOMATIC

    def __post_init__(self) -> None:
        if self.category is Category.SPLIT and self.provenance is not Provenance.MANUAL:
            raise ValueError("Split landmarks are always manual")
        if self.category in (Category.POINT, Category.START, Category.END) and self.is_manual:
            raise ValueError(f"{self.category.value} cannot be a manual landmark")

    @property
    def is_manual(self) -> bool:
        return self.provenance is Provenance.MANUAL

    @property
    def is_point(self) -> bool:
        return self.category is Category.POINT

    @property
    def is_extremum_y(self) -> bool:
        return self.category in (Category.MAXIMUM, Category.MINIMUM)

    @property
    def is_extremum_slope(self) -> bool:
        return self.category in (Category.SLOPE_MAXIMUM, Category.SLOPE_MINIMUM)

    @property
    def is_inflection(self) -> bool:
        return self.category in (
            Category.INFLECTION_ASCENDING,
            Category.INFLECTION_DESCENDING,
        )

    @property
    def is_interval_boundary(self) -> bool:
        return self.category in (Category.START, Category.END, Category.SPLIT)

    @property
    def order_key(self) -> tuple[bool, int]:
        return (self.is_manual, self.category.rank)

    def __lt__(self, other: LandmarkType) -> bool:
        return self.order_key < other.order_key

    @property
    def label(self) -> str:
        """Short label, e.g. ``maxYa`` for an automatic maximum."""
        short = _SHORT.get(self.category)
        if short is None:
            return self.category.value
        return short + ("m" if self.is_manual else "a")

    def __str__(self) -> str:
        return self.label


def alignable(a: LandmarkType, b: LandmarkType) -> bool:
    """True if two landmarks may be mapped onto each other."""
    return a.category is b.category


def opposite(a: LandmarkType, b: LandmarkType) -> bool:
    """True for maximum/minimum and slope-maximum/slope-minimum pairs."""
    return _OPPOSITE.get(a.category) is b.category


def compare(a: LandmarkType, b: LandmarkType) -> int:
    ka, kb = a.order_key, b.order_key
    return (ka > kb) - (ka < kb)


def automatic(category: Category) -> LandmarkType:
    return LandmarkType(category, Provenance.AUTOMATIC)


def manual(category: Category) -> LandmarkType:
    return LandmarkType(category, Provenance.MANUAL)


POINT = automatic(Category.POINT)
START = automatic(Category.START)
END = automatic(Category.END)
SPLIT = manual(Category.SPLIT)
MAXIMUM = automatic(Category.MAXIMUM)
MINIMUM = automatic(Category.MINIMUM)
SLOPE_MAXIMUM = automatic(Category.SLOPE_MAXIMUM)
SLOPE_MINIMUM = automatic(Category.SLOPE_MINIMUM)
INFLECTION_ASCENDING = automatic(Category.INFLECTION_ASCENDING)
INFLECTION_DESCENDING = automatic(Category.INFLECTION_DESCENDING)


@dataclass(frozen=True)
class Landmark:
    """A classified point of a curve, identified by its index."""

    index: int
    kind: LandmarkType

    def __str__(self) -> str:
        return f"{self.index}({self.kind.label})"
