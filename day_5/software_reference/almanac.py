#!/usr/bin/env python3
"""
Almanac - Lowest Location for Seed Ranges

Pushes seed ranges through the chained seed-to-soil ... humidity-to-location
maps and reports the lowest location reached.

Part one reads the seeds line as individual seeds (ranges of length 1).
Part two reads it as (start, length) pairs. Both parts use the same interval
pipeline, so part two costs no more than part one even though its ranges
cover billions of seeds.
"""

import os
import sys
from typing import Iterator, List, NamedTuple, Sequence, Tuple

from software_reference.interval_map import (
    AlmanacError,
    MalformedSeedData,
    MalformedStageData,
    Range,
    RangeMap,
    Rule,
    VALUE_LIMIT,
    total_coverage,
)


DEFAULT_INPUT = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "..", "testcases", "example_input.txt"
)


def _check_ranges(ranges):
    checked = [Range(*r) for r in ranges]
    for interval in checked:
        if not interval.is_valid():
            raise AlmanacError(
                f"[{interval.start}, {interval.end}) is not a range of unsigned 64-bit values"
            )
    return checked


def _map_stage(stage, ranges):
    mapped = []
    for interval in ranges:
        mapped.extend(stage.map_range(interval))
    return mapped


class Pipeline:
    """Ordered sequence of stages; the output of one stage feeds the next."""

    def __init__(self, stages: Sequence[RangeMap]):
        self.stages: Tuple[RangeMap, ...] = tuple(stages)

    def __len__(self):
        return len(self.stages)

    def __repr__(self):
        names = ", ".join(stage.name or "?" for stage in self.stages)
        return f"Pipeline([{names}])"

    def trace(self, ranges: Sequence[Range]) -> Iterator[Tuple[RangeMap, List[Range]]]:
        """Yield (stage, ranges after that stage) for every stage in order."""
        current = _check_ranges(ranges)
        for stage in self.stages:
            current = _map_stage(stage, current)
            yield stage, current

    def run(self, ranges: Sequence[Range]) -> List[Range]:
        """
        Map a range list through every stage.

        Args:
            ranges: Initial ranges

        Returns:
            list: Final ranges, in append order. The total number of covered
                  values equals the input total.

        Raises:
            AlmanacError: an initial range is not 0 <= start <= end <= 2**64
        """
        current = _check_ranges(ranges)
        for stage in self.stages:
            current = _map_stage(stage, current)
        return current

    def map_value(self, value: int) -> int:
        for stage in self.stages:
            value = stage.map_value(value)
        return value


class Almanac(NamedTuple):
    seeds: List[Range]
    pipeline: Pipeline


def _check_triple(triple, stage_name):
    if isinstance(triple, (str, bytes)) or not hasattr(triple, "__len__") or len(triple) != 3:
        raise MalformedStageData(
            f"stage {stage_name or '<unnamed>'!r}: expected 3 values, got {triple!r}"
        )

    for value in triple:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < VALUE_LIMIT:
            raise MalformedStageData(
                f"stage {stage_name or '<unnamed>'!r}: {triple!r} is not three "
                "unsigned 64-bit integers"
            )

    destination_start, source_start, length = triple
    if max(destination_start, source_start) + length > VALUE_LIMIT:
        raise MalformedStageData(
            f"stage {stage_name or '<unnamed>'!r}: {triple!r} runs past 2**64"
        )

    return triple


def _is_named_stage(stage):
    return (
        len(stage) == 2
        and isinstance(stage[0], str)
        and isinstance(stage[1], (list, tuple))
    )


def build_pipeline(stages) -> Pipeline:
    """
    Build a Pipeline from raw map triples.

    Args:
        stages: Ordered stages, each either a list of
                (destination_start, source_start, length) triples or a
                (name, triples) pair

    Returns:
        Pipeline: One RangeMap per stage, rules sorted by source start

    Raises:
        MalformedStageData: a stage is not a sequence of triples, or a triple
            is not three unsigned 64-bit integers whose ranges end by 2**64
        OverlappingRulesInStage: two rules in one stage overlap
    """
    range_maps = []

    for index, stage in enumerate(stages):
        if isinstance(stage, (str, bytes)):
            raise MalformedStageData(f"stage {index}: expected a list of triples, got {stage!r}")
        try:
            stage = tuple(stage)
        except TypeError:
            raise MalformedStageData(
                f"stage {index}: expected a list of triples, got {stage!r}"
            ) from None

        if _is_named_stage(stage):
            name, triples = stage
        else:
            name, triples = f"stage-{index}", stage

        rules = [Rule.from_triple(*_check_triple(t, name)) for t in triples]
        range_maps.append(RangeMap(rules, name=name))

    return Pipeline(range_maps)


def run(pipeline: Pipeline, initial_ranges: Sequence[Range]) -> List[Range]:
    return pipeline.run(initial_ranges)


def lowest_location(ranges: Sequence[Range]) -> int:
    """
    Smallest value covered by any of the ranges.

    Raises:
        AlmanacError: if every range is empty
    """
    starts = [start for start, end in ranges if start < end]
    if not starts:
        raise AlmanacError("no seeds left to locate")
    return min(starts)


def _parse_numbers(text, line_number, error):
    try:
        return [int(token) for token in text.split()]
    except ValueError:
        raise error(f"line {line_number}: expected integers, got {text.strip()!r}") from None


def parse_almanac(text: str, as_spans: bool = False) -> Almanac:
    """
    Parse puzzle input.

    Args:
        text: Puzzle input ("seeds: ..." line, then "x-to-y map:" blocks)
        as_spans: Read seeds as (start, length) pairs instead of single seeds

    Returns:
        Almanac: seeds as ranges plus the built pipeline

    Raises:
        MalformedSeedData: seeds line missing or ill-formed
        MalformedStageData: a map line is not three unsigned 64-bit integers
    """
    seeds = None
    stages = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue

        if seeds is None:
            if not line.startswith("seeds:"):
                raise MalformedSeedData(f"line {line_number}: expected 'seeds:' line, got {line!r}")

            numbers = _parse_numbers(line[len("seeds:"):], line_number, MalformedSeedData)
            if any(not 0 <= n < VALUE_LIMIT for n in numbers):
                raise MalformedSeedData(f"line {line_number}: seeds must be unsigned 64-bit integers")

            if as_spans:
                if len(numbers) % 2:
                    raise MalformedSeedData(
                        f"line {line_number}: {len(numbers)} values cannot form (start, length) pairs"
                    )
                seeds = [Range(s, s + n) for s, n in zip(numbers[::2], numbers[1::2])]
                if any(seed.end > VALUE_LIMIT for seed in seeds):
                    raise MalformedSeedData(f"line {line_number}: seed span runs past 2**64")
            else:
                seeds = [Range(s, s + 1) for s in numbers]

        elif line.endswith("map:"):
            stages.append((line[: -len("map:")].strip(), []))

        else:
            if not stages:
                raise MalformedStageData(f"line {line_number}: map entry before any map header")

            triple = _parse_numbers(line, line_number, MalformedStageData)
            try:
                stages[-1][1].append(_check_triple(tuple(triple), stages[-1][0]))
            except MalformedStageData as e:
                raise MalformedStageData(f"line {line_number}: {e}") from None

    if seeds is None:
        raise MalformedSeedData("input has no 'seeds:' line")

    return Almanac(seeds, build_pipeline(stages))


def read_input(filename, as_spans=False):
    """
    Read and parse an almanac file.

    Args:
        filename: Path to input file
        as_spans: Read seeds as (start, length) pairs

    Returns:
        Almanac: (seeds, pipeline)
    """
    with open(filename) as f:
        return parse_almanac(f.read(), as_spans=as_spans)


def part_one(text):
    almanac = parse_almanac(text, as_spans=False)
    return lowest_location(almanac.pipeline.run(almanac.seeds))


def part_two(text):
    almanac = parse_almanac(text, as_spans=True)
    return lowest_location(almanac.pipeline.run(almanac.seeds))


def report_stages(almanac):
    """Print how the seed ranges fragment while crossing each stage."""
    print(f"    seeds: {len(almanac.seeds)} ranges, {total_coverage(almanac.seeds)} values")
    for stage, ranges in almanac.pipeline.trace(almanac.seeds):
        print(f"    {stage.name:<28} {len(stage):>3} rules -> {len(ranges):>4} ranges")


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(
        description="Lowest location reachable from the almanac seeds"
    )
    parser.add_argument("input_file", nargs="?", default=DEFAULT_INPUT,
                        help="Almanac input file (default: bundled example)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show range fragmentation per stage")
    args = parser.parse_args(argv)

    try:
        with open(args.input_file) as f:
            text = f.read()

        print("=" * 70)
        print("Almanac Range Remapping")
        print("=" * 70)

        for title, as_spans in (("Part 1 (single seeds)", False), ("Part 2 (seed spans)", True)):
            almanac = parse_almanac(text, as_spans=as_spans)
            print(f"\n{title}")
            if args.verbose:
                report_stages(almanac)
            print(f"  Lowest location: {lowest_location(almanac.pipeline.run(almanac.seeds))}")

    except (OSError, AlmanacError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
