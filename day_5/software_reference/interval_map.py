"""
Interval Map - One Almanac Stage

Maps half-open ranges through a partial, offsetting range map without
enumerating individual values. A stage is a set of disjoint rules, each one
a source range plus a signed offset; values covered by no rule pass through
unchanged.

This is the software reference the RangeMapper RTL module is checked against.
"""

from typing import Iterable, List, NamedTuple, Optional, Tuple


class AlmanacError(ValueError):
    """Base class for every almanac data-contract violation."""


class MalformedStageData(AlmanacError):
    """A map entry is not three non-negative integers."""


class MalformedSeedData(AlmanacError):
    """The seeds line is missing or cannot be read as ranges."""


class OverlappingRulesInStage(AlmanacError):
    """Two rules of the same stage cover a common value."""


# Values are unsigned 64-bit; a half-open range may end at VALUE_LIMIT itself
VALUE_LIMIT = 2**64


class Range(NamedTuple):
    """Half-open interval [start, end) of non-negative integers."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return max(self.end - self.start, 0)

    def is_empty(self) -> bool:
        return self.end <= self.start

    def is_valid(self) -> bool:
        """True when 0 <= start <= end <= VALUE_LIMIT."""
        return 0 <= self.start <= self.end <= VALUE_LIMIT

    def overlap(self, other: "Range") -> Optional["Range"]:
        """
        Intersection with another range.

        Returns:
            Range or None: None when the ranges share no value
        """
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start < end:
            return Range(start, end)
        return None

    def shift(self, offset: int) -> "Range":
        return Range(self.start + offset, self.end + offset)


class Rule(NamedTuple):
    """Source range paired with the offset added to every value inside it."""

    source: Range
    offset: int

    @classmethod
    def from_triple(cls, destination_start: int, source_start: int, length: int) -> "Rule":
        return cls(
            Range(source_start, source_start + length),
            destination_start - source_start,
        )


class RangeMap:
    """
    One category-to-category stage of the almanac.

    Rules are kept sorted by source start so map_range can do a single
    left-to-right scan. Zero-length rules cover nothing and are dropped.

    Raises:
        OverlappingRulesInStage: if two rules share any source value
    """

    def __init__(self, rules: Iterable[Rule], name: str = ""):
        self.name = name
        ordered = sorted(
            (rule for rule in rules if not rule.source.is_empty()),
            key=lambda rule: rule.source,
        )

        for previous, current in zip(ordered, ordered[1:]):
            if previous.source.end > current.source.start:
                raise OverlappingRulesInStage(
                    f"stage {name or '<unnamed>'!r}: source ranges "
                    f"[{previous.source.start}, {previous.source.end}) and "
                    f"[{current.source.start}, {current.source.end}) overlap"
                )

        self.rules: Tuple[Rule, ...] = tuple(ordered)

    def __len__(self):
        return len(self.rules)

    def __repr__(self):
        return f"RangeMap(name={self.name!r}, rules={len(self.rules)})"

    def map_range(self, interval: Range) -> List[Range]:
        """
        Map one range through this stage.

        Args:
            interval: Input range, start <= end (Pipeline.run checks this)

        Returns:
            list: Output ranges in scan order. Their lengths add up to the
                  input length; empty ranges are never emitted.

        Algorithm:
            1. Keep a cursor, initially the whole input range
            2. For each rule (ascending), intersect it with the cursor
            3. Emit the uncovered gap before the overlap unchanged
            4. Emit the overlap shifted by the rule offset, move cursor past it
            5. Emit whatever is left of the cursor unchanged

        Time Complexity: O(r) where r is the number of rules in the stage
        """
        cursor_start, cursor_end = interval
        mapped = []

        for source, offset in self.rules:
            if source.start >= cursor_end:
                # Rules are sorted, nothing further can overlap
                break

            overlap = Range(cursor_start, cursor_end).overlap(source)
            if overlap is None:
                continue

            if cursor_start < overlap.start:
                mapped.append(Range(cursor_start, overlap.start))

            cursor_start = overlap.end
            mapped.append(overlap.shift(offset))

        if cursor_start < cursor_end:
            mapped.append(Range(cursor_start, cursor_end))

        return mapped

    def map_value(self, value: int) -> int:
        """Map a single value; used as the brute-force reference."""
        for source, offset in self.rules:
            if source.start <= value < source.end:
                return value + offset
        return value


def merge_ranges(ranges: Iterable[Tuple[int, int]]) -> List[Range]:
    """
    Union of half-open ranges as a sorted list of disjoint ranges.

    Two range lists cover the same values exactly when their merged forms
    are equal, which lets callers compare value sets without enumeration.

    Args:
        ranges: Iterable of (start, end) pairs

    Returns:
        list: Sorted, non-overlapping, non-adjacent ranges

    Time Complexity: O(n log n)
    """
    merged: List[Range] = []

    for start, end in sorted(Range(*r) for r in ranges):
        if end <= start:
            continue

        if merged and start <= merged[-1].end:
            # Overlapping or touching: [a, b) + [b, c) == [a, c)
            last = merged[-1]
            merged[-1] = Range(last.start, max(last.end, end))
        else:
            merged.append(Range(start, end))

    return merged


def total_coverage(ranges: Iterable[Tuple[int, int]]) -> int:
    """Sum of range lengths. Only equals the covered count for disjoint ranges."""
    return sum(Range(*r).length for r in ranges)
