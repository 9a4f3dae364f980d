"""
Tests for streaming tool-call aggregation.

A tool call's arguments arrive as arbitrary fragments; the assembled
call must not depend on how the payload was split.
"""

import pytest

from clipdesk.agent.providers.aggregator import (
    RAW_ARGUMENTS_KEY,
    ToolCallAggregator,
    parse_tool_arguments,
)

PAYLOAD = '{"input_path": "/clips/intro.mp4", "height": 480, "keep_aspect": true}'
EXPECTED = {"input_path": "/clips/intro.mp4", "height": 480, "keep_aspect": True}


def split_every(payload: str, size: int) -> list[str]:
    return [payload[i:i + size] for i in range(0, len(payload), size)]


class TestFragmentAssembly:
    """Tests for assembling arguments from 1..N fragments."""

    @pytest.mark.parametrize("size", [len(PAYLOAD), 16, 5, 2, 1])
    def test_any_split_yields_same_arguments(self, size):
        aggregator = ToolCallAggregator()
        aggregator.start(0, call_id="toolu_1", name="resize_video")
        for fragment in split_every(PAYLOAD, size):
            aggregator.add_fragment(0, fragment)

        tool_call = aggregator.finish(0)

        assert tool_call.id == "toolu_1"
        assert tool_call.name == "resize_video"
        assert tool_call.arguments == EXPECTED

    def test_interleaved_calls_assemble_independently(self):
        aggregator = ToolCallAggregator()
        aggregator.start(0, call_id="a", name="trim_video")
        aggregator.start(1, call_id="b", name="resize_video")

        aggregator.add_fragment(0, '{"start"')
        aggregator.add_fragment(1, '{"height":')
        aggregator.add_fragment(0, ': 1.5}')
        aggregator.add_fragment(1, ' 480}')

        first, second = aggregator.finish_all()

        assert (first.id, first.arguments) == ("a", {"start": 1.5})
        assert (second.id, second.arguments) == ("b", {"height": 480})
        assert len(aggregator) == 0

    def test_id_and_name_captured_on_first_sight(self):
        aggregator = ToolCallAggregator()
        aggregator.start(0, call_id="call_1", name="resize_video")
        aggregator.start(0, call_id=None, name=None)
        aggregator.start(0, call_id="other", name="other")

        tool_call = aggregator.finish(0)
        assert (tool_call.id, tool_call.name) == ("call_1", "resize_video")

    def test_fragment_before_start_creates_call(self):
        aggregator = ToolCallAggregator()
        aggregator.add_fragment(3, "{}")
        assert 3 in aggregator

        tool_call = aggregator.finish(3)
        assert tool_call.id.startswith("call_")
        assert tool_call.arguments == {}

    def test_missing_ids_never_repeat_across_aggregators(self):
        ids = set()
        for _ in range(3):
            aggregator = ToolCallAggregator()
            aggregator.start(0, call_id=None, name="probe_video")
            aggregator.add_fragment(0, "{}")
            ids.add(aggregator.finish(0).id)

        assert len(ids) == 3
        assert all(call_id.startswith("call_") for call_id in ids)

    def test_finish_unknown_key_raises(self):
        with pytest.raises(KeyError):
            ToolCallAggregator().finish(0)


class TestArgumentParsing:
    """Tests for parse_tool_arguments edge cases."""

    def test_empty_payload_is_empty_object(self):
        assert parse_tool_arguments("") == {}
        assert parse_tool_arguments("   ") == {}

    def test_malformed_json_is_wrapped(self):
        assert parse_tool_arguments('{"height": 48') == {RAW_ARGUMENTS_KEY: '{"height": 48'}

    def test_non_object_json_is_wrapped(self):
        assert parse_tool_arguments("[1, 2]") == {RAW_ARGUMENTS_KEY: "[1, 2]"}

    def test_truncated_stream_still_yields_call(self):
        aggregator = ToolCallAggregator()
        aggregator.start(0, call_id="t1", name="resize_video")
        aggregator.add_fragment(0, '{"hei')

        tool_call = aggregator.finish(0)
        assert tool_call.arguments == {RAW_ARGUMENTS_KEY: '{"hei'}
