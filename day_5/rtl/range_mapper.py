"""
Range Mapper Hardware Implementation using Amaranth HDL

One almanac stage in RTL: maps a stream of half-open [start, end) ranges
through a set of offsetting rules, splitting each input range into the
fragments covered by each rule and the uncovered gaps between them.

Architecture:
- Rule load: (source_start, source_end, offset) triples written into
  register banks while IDLE. Rules must be pre-sorted by source start and
  pairwise disjoint (the software reference sorts and validates them).
- Input: one (start, end) range at a time, accepted while ready is high
- Output: stream of (start, end) fragments, one per clock at most, followed
  by a done strobe once the input range is fully accounted for
- Processing: linear scan over the rules with a cursor register holding the
  part of the input range not yet emitted

Offsets are signed and one bit wider than the range values, so a rule can
move a value anywhere in the 64-bit domain.
"""

from amaranth import *


class RangeMapper(Elaboratable):
    """
    Hardware module that maps one range through one almanac stage.

    Ports:
        Input (rule loading phase):
            - rule_start_in: Rule source range start (64-bit)
            - rule_end_in: Rule source range end, exclusive (64-bit)
            - rule_offset_in: Value added inside the source range (signed 65-bit)
            - rule_valid_in: Rule input data valid signal
            - clear: Forget all loaded rules

        Input (mapping phase):
            - start_in: Range start value (64-bit)
            - end_in: Range end value, exclusive (64-bit)
            - valid_in: Range input data valid signal

        Output:
            - start_out: Fragment start value (64-bit)
            - end_out: Fragment end value, exclusive (64-bit)
            - valid_out: Fragment valid strobe
            - done: Input range fully mapped (strobe)
            - rule_count_out: Number of rules loaded

        Control:
            - ready: Ready to accept a rule or a range
    """

    def __init__(self, max_rules=64, width=64):
        """
        Initialize the Range Mapper module.

        Args:
            max_rules: Number of rule slots (default: 64)
            width: Bit width for range values (default: 64)
        """
        self.max_rules = max_rules
        self.width = width

        # Rule input interface
        self.rule_start_in = Signal(width)
        self.rule_end_in = Signal(width)
        self.rule_offset_in = Signal(signed(width + 1))
        self.rule_valid_in = Signal()
        self.clear = Signal()

        # Range input interface
        self.start_in = Signal(width)
        self.end_in = Signal(width)
        self.valid_in = Signal()

        # Output interface
        self.start_out = Signal(width)
        self.end_out = Signal(width)
        self.valid_out = Signal()
        self.done = Signal()
        self.rule_count_out = Signal(range(max_rules + 1))

        # Control
        self.ready = Signal()

    def elaborate(self, platform):
        m = Module()

        # Rule register banks
        rule_starts = Array(Signal(self.width, name=f"rule_start_{i}")
                            for i in range(self.max_rules))
        rule_ends = Array(Signal(self.width, name=f"rule_end_{i}")
                          for i in range(self.max_rules))
        rule_offsets = Array(Signal(signed(self.width + 1), name=f"rule_offset_{i}")
                             for i in range(self.max_rules))
        rule_count = Signal(range(self.max_rules + 1))

        m.d.comb += self.rule_count_out.eq(rule_count)

        # Part of the input range not emitted yet
        cursor_start = Signal(self.width)
        cursor_end = Signal(self.width)
        rule_idx = Signal(range(self.max_rules + 1))

        # Rule under the scan and its overlap with the cursor
        cur_start = Signal(self.width)
        cur_end = Signal(self.width)
        cur_offset = Signal(signed(self.width + 1))
        ov_start = Signal(self.width)
        ov_end = Signal(self.width)
        has_overlap = Signal()
        shifted_start = Signal(self.width)
        shifted_end = Signal(self.width)

        m.d.comb += [
            cur_start.eq(rule_starts[rule_idx]),
            cur_end.eq(rule_ends[rule_idx]),
            cur_offset.eq(rule_offsets[rule_idx]),

            ov_start.eq(Mux(cursor_start > cur_start, cursor_start, cur_start)),
            ov_end.eq(Mux(cursor_end < cur_end, cursor_end, cur_end)),
            has_overlap.eq(ov_start < ov_end),

            # Truncation back to width is exact for well-formed rules
            shifted_start.eq(ov_start + cur_offset),
            shifted_end.eq(ov_end + cur_offset),
        ]

        # Strobes, overridden below when a fragment is emitted
        m.d.sync += [
            self.valid_out.eq(0),
            self.done.eq(0),
        ]

        with m.FSM() as fsm:

            with m.State("IDLE"):
                m.d.comb += self.ready.eq(1)

                with m.If(self.clear):
                    m.d.sync += rule_count.eq(0)

                with m.Elif(self.rule_valid_in & (rule_count < self.max_rules)):
                    m.d.sync += [
                        rule_starts[rule_count].eq(self.rule_start_in),
                        rule_ends[rule_count].eq(self.rule_end_in),
                        rule_offsets[rule_count].eq(self.rule_offset_in),
                        rule_count.eq(rule_count + 1),
                    ]

                with m.Elif(self.valid_in):
                    m.d.sync += [
                        cursor_start.eq(self.start_in),
                        cursor_end.eq(self.end_in),
                        rule_idx.eq(0),
                    ]
                    m.next = "SCAN"

            with m.State("SCAN"):
                with m.If(rule_idx == rule_count):
                    # Trailing identity fragment
                    with m.If(cursor_start < cursor_end):
                        m.d.sync += [
                            self.start_out.eq(cursor_start),
                            self.end_out.eq(cursor_end),
                            self.valid_out.eq(1),
                        ]
                    m.d.sync += self.done.eq(1)
                    m.next = "IDLE"

                with m.Elif(cur_start >= cursor_end):
                    # Rules are sorted: nothing further can overlap
                    m.d.sync += rule_idx.eq(rule_count)

                with m.Elif(~has_overlap):
                    m.d.sync += rule_idx.eq(rule_idx + 1)

                with m.Elif(cursor_start < ov_start):
                    # Gap before the rule passes through unchanged; the
                    # overlap itself goes out on the next cycle
                    m.d.sync += [
                        self.start_out.eq(cursor_start),
                        self.end_out.eq(ov_start),
                        self.valid_out.eq(1),
                        cursor_start.eq(ov_start),
                    ]

                with m.Else():
                    m.d.sync += [
                        self.start_out.eq(shifted_start),
                        self.end_out.eq(shifted_end),
                        self.valid_out.eq(1),
                        cursor_start.eq(ov_end),
                        rule_idx.eq(rule_idx + 1),
                    ]

        return m


if __name__ == "__main__":
    import sys
    from amaranth.back import verilog

    output_path = sys.argv[1] if len(sys.argv) > 1 else "range_mapper.v"

    top = RangeMapper(max_rules=64, width=64)
    v = verilog.convert(top, name="top", ports=[
        # Rule input interface
        top.rule_start_in, top.rule_end_in, top.rule_offset_in, top.rule_valid_in, top.clear,
        # Range input interface
        top.start_in, top.end_in, top.valid_in,
        # Output interface
        top.start_out, top.end_out, top.valid_out, top.done, top.rule_count_out,
        # Control
        top.ready,
    ])

    with open(output_path, "w") as f:
        f.write(v)
    print(f"Generated {output_path}")
