"""Tests for tradejournal.tags.propagation: tag rename and registry helpers."""

from tradejournal.tags.propagation import (
    TagUpdateResult,
    extract_tags_from_trades,
    get_tag_group,
    get_tag_name,
    have_tags_changed,
    is_grouped_tag,
    missing_required_groups,
    normalize_pair_tag,
    update_calendar_tags_from_trade_changes,
    update_tags_with_group_name_change,
    update_trade_tags_with_group_name_change,
)


class TestTagParts:
    def test_grouped_tag(self):
        assert get_tag_group("Setup:Breakout") == "Setup"
        assert get_tag_name("Setup:Breakout") == "Breakout"
        assert is_grouped_tag("Setup:Breakout")

    def test_plain_tag(self):
        assert get_tag_group("Breakout") is None
        assert get_tag_name("Breakout") == "Breakout"
        assert not is_grouped_tag("Breakout")

    def test_only_first_colon_splits(self):
        assert get_tag_group("Time:10:30") == "Time"
        assert get_tag_name("Time:10:30") == "10:30"

    def test_empty(self):
        assert get_tag_group("") is None
        assert get_tag_name("") == ""


class TestUpdateTagsWithGroupNameChange:
    def test_simple_rename(self):
        result = update_tags_with_group_name_change(["B", "A", "C"], "A", "Z")
        assert result == ["B", "C", "Z"]

    def test_delete_with_blank_new_tag(self):
        assert update_tags_with_group_name_change(["A", "B"], "A", "") == ["B"]
        assert update_tags_with_group_name_change(["A", "B"], "A", "   ") == ["B"]

    def test_missing_tag_leaves_list_sorted(self):
        assert update_tags_with_group_name_change(["b", "a"], "x", "y") == ["a", "b"]

    def test_group_change_moves_every_group_member(self):
        tags = ["Setup:A", "Setup:B", "Other:C", "Plain"]
        result = update_tags_with_group_name_change(tags, "Setup:A", "Entry:A2")
        assert result == ["Entry:A2", "Entry:B", "Other:C", "Plain"]

    def test_same_group_rename_only_touches_tag(self):
        tags = ["Setup:A", "Setup:B"]
        assert update_tags_with_group_name_change(tags, "Setup:A", "Setup:Z") == ["Setup:B", "Setup:Z"]

    def test_deduplicates(self):
        assert update_tags_with_group_name_change(["A", "B"], "A", "B") == ["B"]

    def test_non_list_input(self):
        assert update_tags_with_group_name_change(None, "A", "B") == []
        assert update_tags_with_group_name_change("A", "A", "B") == []


class TestUpdateTradeTags:
    def test_keeps_order(self):
        result = update_trade_tags_with_group_name_change(["X", "A", "Y"], "A", "Z")
        assert result.tags == ["X", "Z", "Y"]
        assert result.updated
        assert result.updated_count == 1

    def test_no_match(self):
        result = update_trade_tags_with_group_name_change(["X"], "A", "Z")
        assert result.tags == ["X"]
        assert not result.updated
        assert result.updated_count == 0

    def test_group_change_counts_each_element(self):
        result = update_trade_tags_with_group_name_change(
            ["Setup:A", "Setup:B", "Misc"], "Setup:A", "Entry:A"
        )
        assert result.tags == ["Entry:A", "Entry:B", "Misc"]
        assert result.updated_count == 2

    def test_delete(self):
        result = update_trade_tags_with_group_name_change(["A", "B"], "A", "")
        assert result.tags == ["B"]
        assert result.updated_count == 1

    def test_non_list(self):
        assert update_trade_tags_with_group_name_change(None, "A", "B") == TagUpdateResult()


class TestCalendarTagRegistry:
    def test_extract_tags_accepts_dicts_and_objects(self):
        class Obj:
            tags = ["b", " a "]

        assert extract_tags_from_trades([{"tags": ["c", ""]}, Obj()]) == ["a", "b", "c"]

    def test_have_tags_changed(self):
        assert have_tags_changed([{"tags": ["a"]}], [{"tags": ["b"]}])
        assert not have_tags_changed([{"tags": ["a", "a"]}], [{"tags": ["a"]}])

    def test_added_tag(self):
        result = update_calendar_tags_from_trade_changes(
            ["a"], [{"tags": ["a"]}], [{"tags": ["a", "b"]}]
        )
        assert result == ["a", "b"]

    def test_removed_tag_dropped_when_unused(self):
        result = update_calendar_tags_from_trade_changes(
            ["a", "b"], [{"tags": ["a", "b"]}], [{"tags": ["a"]}], [{"tags": ["a"]}]
        )
        assert result == ["a"]

    def test_removed_tag_kept_when_other_trade_uses_it(self):
        result = update_calendar_tags_from_trade_changes(
            ["a", "b"], [{"tags": ["a", "b"]}], [{"tags": ["a"]}], [{"tags": ["b"]}]
        )
        assert result is None

    def test_unchanged_returns_none(self):
        assert update_calendar_tags_from_trade_changes(["a"], [{"tags": ["a"]}], [{"tags": ["a"]}]) is None

    def test_empty_registry_is_rebuilt(self):
        result = update_calendar_tags_from_trade_changes(
            [], [], [{"tags": ["z"]}], [{"tags": ["a"]}]
        )
        assert result == ["a", "z"]

    def test_empty_registry_without_tags_returns_none(self):
        assert update_calendar_tags_from_trade_changes([], [], [{"tags": []}]) is None


class TestPairAndRequiredGroups:
    def test_normalize_pair_tag(self):
        assert normalize_pair_tag("Pair:EURUSD") == "pair:EURUSD"
        assert normalize_pair_tag("PAIR:GBPUSD") == "pair:GBPUSD"
        assert normalize_pair_tag("Setup:A") == "Setup:A"
        assert normalize_pair_tag("Pair") == "Pair"

    def test_missing_required_groups(self):
        assert missing_required_groups(["Setup:A", "Plain"], ["Setup", "Session"]) == ["Session"]
        assert missing_required_groups([], []) == []
