"""Tag rename propagation, calendar tag registry and tag definitions."""

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
from tradejournal.tags.service import TagRenameResult, TagService, refresh_calendar_tags

__all__ = [
    "TagRenameResult",
    "TagService",
    "TagUpdateResult",
    "extract_tags_from_trades",
    "get_tag_group",
    "get_tag_name",
    "have_tags_changed",
    "is_grouped_tag",
    "missing_required_groups",
    "normalize_pair_tag",
    "refresh_calendar_tags",
    "update_calendar_tags_from_trade_changes",
    "update_tags_with_group_name_change",
    "update_trade_tags_with_group_name_change",
]
