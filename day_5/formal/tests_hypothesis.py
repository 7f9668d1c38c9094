"""
Property-based tests for the almanac interval mapping using Hypothesis.

Every interval result is checked against a brute-force per-value mapping on
small domains, so the interval arithmetic never has to be trusted on its own.
"""

from collections import Counter

import pytest
from hypothesis import given, strategies as st, settings
from hypothesis.strategies import integers, lists

from software_reference.almanac import build_pipeline, lowest_location, run
from software_reference.interval_map import Range, RangeMap, Rule, merge_ranges, total_coverage


# Strategy for generating valid ranges (start <= end)
@st.composite
def valid_range(draw, max_value=1000):
    """Generate a half-open range, possibly empty."""
    start = draw(integers(min_value=0, max_value=max_value))
    end = draw(integers(min_value=start, max_value=max_value))
    return Range(start, end)


@st.composite
def disjoint_triples(draw, max_value=1000, max_rules=8):
    """
    Generate raw (destination, source, length) triples with disjoint sources.

    Sources come from cutting sorted unique points into consecutive pairs;
    the triples are shuffled so the stage has to sort them.
    """
    points = sorted(draw(lists(integers(0, max_value), max_size=2 * max_rules, unique=True)))
    triples = []
    for start, end in zip(points[::2], points[1::2]):
        destination = draw(integers(0, max_value))
        triples.append((destination, start, end - start))
    return draw(st.permutations(triples))


def stage_from_triples(triples):
    return RangeMap(Rule.from_triple(*t) for t in triples)


def enumerate_values(ranges):
    """Multiset of every integer covered by the ranges."""
    values = Counter()
    for start, end in ranges:
        values.update(range(start, end))
    return values


# Property 1: Conservation of value count through one stage
@given(valid_range(), disjoint_triples())
@settings(max_examples=500)
def test_conservation(interval, triples):
    """
    Property: the lengths of the mapped fragments add up to the input length.
    """
    mapped = stage_from_triples(triples).map_range(interval)
    assert total_coverage(mapped) == interval.length


# Property 2: A stage without rules is the identity
@given(valid_range())
def test_identity_stage(interval):
    mapped = RangeMap([]).map_range(interval)
    if interval.is_empty():
        assert mapped == []
    else:
        assert mapped == [interval]


# Property 3: A rule that exactly covers the input shifts it as a whole
@given(valid_range(), integers(min_value=0, max_value=10**6))
def test_full_cover_stage(interval, destination):
    if interval.is_empty():
        return

    rule = Rule.from_triple(destination, interval.start, interval.length)
    mapped = RangeMap([rule]).map_range(interval)

    assert mapped == [Range(destination, destination + interval.length)]


# Property 4: Fragments are never empty
@given(valid_range(), disjoint_triples())
def test_no_empty_fragments(interval, triples):
    for fragment in stage_from_triples(triples).map_range(interval):
        assert not fragment.is_empty(), f"Empty fragment emitted: {fragment}"


# Property 5: Interval mapping equals per-value mapping (one stage)
@given(valid_range(), disjoint_triples())
@settings(max_examples=300)
def test_no_value_loss(interval, triples):
    """
    Property: the multiset of mapped values equals the multiset obtained by
    mapping every value of the input range one by one.
    """
    stage = stage_from_triples(triples)

    interval_values = enumerate_values(stage.map_range(interval))
    brute_values = Counter(stage.map_value(v) for v in range(*interval))

    assert interval_values == brute_values


# Property 6: Chained stages equal the value-by-value composition
@given(lists(valid_range(), max_size=5), lists(disjoint_triples(), max_size=4))
@settings(max_examples=200)
def test_pipeline_matches_brute_force(seeds, stages):
    pipeline = build_pipeline(stages)
    final = run(pipeline, seeds)

    expected = Counter()
    for start, end in seeds:
        expected.update(pipeline.map_value(v) for v in range(start, end))

    assert enumerate_values(final) == expected


# Property 7: Running two pipelines back to back equals running their concatenation
@given(lists(valid_range(), max_size=5),
       lists(disjoint_triples(), max_size=3),
       lists(disjoint_triples(), max_size=3))
def test_pipeline_composition(seeds, first, second):
    chained = run(build_pipeline(second), run(build_pipeline(first), seeds))
    combined = run(build_pipeline(first + second), seeds)

    assert chained == combined


# Property 8: Lowest location is the brute-force minimum
@given(lists(valid_range(max_value=300), min_size=1, max_size=4),
       lists(disjoint_triples(max_value=300), max_size=4))
def test_lowest_location_matches_brute_force(seeds, stages):
    if all(seed.is_empty() for seed in seeds):
        return

    pipeline = build_pipeline(stages)
    brute = min(pipeline.map_value(v) for start, end in seeds for v in range(start, end))

    assert lowest_location(run(pipeline, seeds)) == brute


# Property 9: Large 64-bit ranges are handled without enumeration
@given(integers(min_value=0, max_value=2**63), integers(min_value=1, max_value=2**62))
def test_wide_ranges_conserved(start, length):
    top = 2**64
    stage = RangeMap([
        Rule.from_triple(0, start, length),
        Rule.from_triple(top - length, start + length, length),
    ])

    mapped = stage.map_range(Range(0, top))

    assert total_coverage(mapped) == top
    assert merge_ranges(mapped)[0].start == 0


# merge_ranges: union semantics
@given(lists(valid_range(max_value=200), max_size=20))
def test_merge_ranges_preserves_value_set(ranges):
    merged = merge_ranges(ranges)

    assert set(enumerate_values(merged)) == set(enumerate_values(ranges))
    for previous, current in zip(merged, merged[1:]):
        assert previous.end < current.start


def test_split_correctness():
    """[0, 10) through [3, 6) +100 splits into three fragments."""
    mapped = RangeMap([Rule(Range(3, 6), 100)]).map_range(Range(0, 10))

    assert mapped == [Range(0, 3), Range(103, 106), Range(6, 10)]
    assert set(enumerate_values(mapped)) == {0, 1, 2, 103, 104, 105, 6, 7, 8, 9}


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
