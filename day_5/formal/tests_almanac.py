"""
Example-driven tests for almanac parsing, construction errors and the
canonical puzzle answers.
"""

import os

import pytest

from software_reference.almanac import (
    DEFAULT_INPUT,
    Pipeline,
    build_pipeline,
    lowest_location,
    main,
    parse_almanac,
    part_one,
    part_two,
    read_input,
    run,
)
from software_reference.interval_map import (
    AlmanacError,
    MalformedSeedData,
    MalformedStageData,
    OverlappingRulesInStage,
    Range,
    RangeMap,
    Rule,
)


with open(DEFAULT_INPUT) as f:
    EXAMPLE = f.read()


def test_part_one_example():
    assert part_one(EXAMPLE) == 35


def test_part_two_example():
    assert part_two(EXAMPLE) == 46


def test_example_seed_locations():
    """Per-seed locations from the puzzle walkthrough."""
    almanac = parse_almanac(EXAMPLE)
    locations = [almanac.pipeline.map_value(seed.start) for seed in almanac.seeds]
    assert locations == [82, 43, 86, 35]


def test_parse_singletons_and_spans():
    singles = parse_almanac(EXAMPLE)
    spans = parse_almanac(EXAMPLE, as_spans=True)

    assert singles.seeds == [Range(79, 80), Range(14, 15), Range(55, 56), Range(13, 14)]
    assert spans.seeds == [Range(79, 93), Range(55, 68)]


def test_parse_stage_names_and_sorting():
    pipeline = parse_almanac(EXAMPLE).pipeline

    assert len(pipeline) == 7
    assert pipeline.stages[0].name == "seed-to-soil"
    assert pipeline.stages[-1].name == "humidity-to-location"

    # "50 98 2" and "52 50 48" come out sorted by source start
    assert pipeline.stages[0].rules == (
        Rule(Range(50, 98), 2),
        Rule(Range(98, 100), -48),
    )


def test_read_input_matches_parse():
    almanac = read_input(DEFAULT_INPUT, as_spans=True)
    assert lowest_location(run(almanac.pipeline, almanac.seeds)) == 46


def test_build_pipeline_plain_triples():
    pipeline = build_pipeline([[(50, 98, 2), (52, 50, 48)]])

    assert isinstance(pipeline, Pipeline)
    assert run(pipeline, [Range(79, 80), Range(98, 100)]) == [Range(81, 82), Range(50, 52)]


def test_empty_pipeline_is_identity():
    assert run(build_pipeline([]), [Range(3, 9)]) == [Range(3, 9)]


def test_zero_length_rule_ignored():
    stage = RangeMap([Rule.from_triple(0, 5, 0), Rule.from_triple(100, 0, 10)])
    assert len(stage) == 1
    assert stage.map_range(Range(4, 6)) == [Range(104, 106)]


def test_rule_beyond_cursor_stops_scan():
    stage = RangeMap([Rule.from_triple(0, 10, 5), Rule.from_triple(50, 20, 5)])
    assert stage.map_range(Range(0, 8)) == [Range(0, 8)]


@pytest.mark.parametrize("triple", [
    (1, 2),
    (1, 2, 3, 4),
    (1, -2, 3),
    (1, 2, "3"),
    (1.0, 2, 3),
    (True, 2, 3),
    "123",
])
def test_malformed_triples_rejected(triple):
    with pytest.raises(MalformedStageData):
        build_pipeline([("seed-to-soil", [(0, 0, 1), triple])])


def test_overlapping_rules_rejected():
    with pytest.raises(OverlappingRulesInStage, match="seed-to-soil"):
        build_pipeline([("seed-to-soil", [(0, 10, 5), (100, 12, 5)])])


def test_adjacent_rules_accepted():
    pipeline = build_pipeline([[(0, 10, 5), (100, 15, 5)]])
    assert run(pipeline, [Range(10, 20)]) == [Range(0, 5), Range(100, 105)]


def test_errors_are_value_errors():
    assert issubclass(MalformedStageData, AlmanacError)
    assert issubclass(OverlappingRulesInStage, AlmanacError)
    assert issubclass(AlmanacError, ValueError)


@pytest.mark.parametrize("text, error, line", [
    ("seed-to-soil map:\n1 2 3\n", MalformedSeedData, "line 1"),
    ("seeds: 1 x 3\n", MalformedSeedData, "line 1"),
    ("seeds: 1 -3\n", MalformedSeedData, "line 1"),
    ("seeds: 1 2\n\n3 4 5\n", MalformedStageData, "line 3"),
    ("seeds: 1 2\n\na-to-b map:\n3 4\n", MalformedStageData, "line 4"),
    ("seeds: 1 2\n\na-to-b map:\n3 four 5\n", MalformedStageData, "line 4"),
])
def test_parse_errors_report_line(text, error, line):
    with pytest.raises(error, match=line):
        parse_almanac(text)


def test_odd_spans_rejected():
    with pytest.raises(MalformedSeedData):
        parse_almanac("seeds: 1 2 3\n", as_spans=True)


def test_missing_seeds_rejected():
    with pytest.raises(MalformedSeedData):
        parse_almanac("\n\n")


def test_lowest_location_skips_empty_ranges():
    assert lowest_location([Range(2, 2), Range(7, 9)]) == 7

    with pytest.raises(AlmanacError):
        lowest_location([Range(4, 4)])


def test_main_reports_both_parts(capsys):
    assert main([DEFAULT_INPUT, "--verbose"]) == 0

    out = capsys.readouterr().out
    assert "Lowest location: 35" in out
    assert "Lowest location: 46" in out
    assert "humidity-to-location" in out


def test_main_missing_file(tmp_path, capsys):
    assert main([os.path.join(tmp_path, "missing.txt")]) == 1
    assert "Error" in capsys.readouterr().err


@pytest.mark.parametrize("stage", [
    iter([(0, 5, 1)]),
    ((0, 5, 1) for _ in range(1)),
])
def test_iterable_stages_accepted(stage):
    pipeline = build_pipeline([stage])
    assert run(pipeline, [Range(5, 6)]) == [Range(0, 1)]


@pytest.mark.parametrize("stage", [None, 7, "1 2 3", b"1 2 3"])
def test_non_sequence_stage_rejected(stage):
    with pytest.raises(MalformedStageData, match="stage 0"):
        build_pipeline([stage])


def test_string_triples_not_read_as_stage_name():
    with pytest.raises(MalformedStageData, match="stage 'stage-0': expected 3 values, got '1 2 3'"):
        build_pipeline([["1 2 3", "4 5 6"]])


@pytest.mark.parametrize("triple", [
    (2**64, 0, 10),
    (0, 2**64, 1),
    (0, 0, 2**64 + 1),
    (0, 2**64 - 5, 6),
    (2**64 - 5, 0, 6),
    (2**70, 0, 10),
])
def test_triples_beyond_64_bits_rejected(triple):
    with pytest.raises(MalformedStageData):
        build_pipeline([[triple]])


def test_triple_reaching_top_of_domain_accepted():
    pipeline = build_pipeline([[(0, 2**64 - 4, 4)]])
    assert run(pipeline, [Range(2**64 - 6, 2**64)]) == [Range(2**64 - 6, 2**64 - 4), Range(0, 4)]


@pytest.mark.parametrize("text, as_spans", [
    (f"seeds: {2**64}\n", False),
    (f"seeds: {2**64 - 2} 3\n", True),
])
def test_seeds_beyond_64_bits_rejected(text, as_spans):
    with pytest.raises(MalformedSeedData, match="line 1"):
        parse_almanac(text, as_spans=as_spans)


def test_map_line_beyond_64_bits_reports_line():
    text = f"seeds: 1\n\na-to-b map:\n0 0 1\n{2**64} 0 1\n"
    with pytest.raises(MalformedStageData, match="line 5"):
        parse_almanac(text)


@pytest.mark.parametrize("interval", [Range(5, 3), Range(-1, 4), Range(0, 2**64 + 1)])
def test_run_rejects_invalid_ranges(interval):
    pipeline = build_pipeline([[(0, 0, 10)]])
    with pytest.raises(AlmanacError):
        run(pipeline, [interval])
    with pytest.raises(AlmanacError):
        list(pipeline.trace([interval]))


def test_run_accepts_plain_tuples():
    pipeline = build_pipeline([[(100, 0, 10)]])
    assert run(pipeline, [(2, 4)]) == [Range(102, 104)]


def test_trace_ends_where_run_ends():
    almanac = parse_almanac(EXAMPLE, as_spans=True)
    traced = list(almanac.pipeline.trace(almanac.seeds))

    assert [stage.name for stage, _ in traced][0] == "seed-to-soil"
    assert traced[-1][1] == almanac.pipeline.run(almanac.seeds)
