"""Tag propagation helpers.

Pure functions that rewrite tag lists when a tag (or a whole tag group)
is renamed, and keep a calendar's tag registry consistent with the tags
actually used by its trades.

Tags are either plain text (``Breakout``) or grouped (``Setup:Breakout``).
The group is the text before the first ``:``.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Set

PAIR_GROUP = "pair"


@dataclass
class TagUpdateResult:
    """Outcome of rewriting one trade's tags."""

    tags: List[str] = field(default_factory=list)
    updated: bool = False
    updated_count: int = 0


def get_tag_group(tag: str) -> Optional[str]:
    """Return the group of a grouped tag, or None for a plain tag."""
    if not tag or ":" not in tag:
        return None
    return tag.split(":", 1)[0]


def get_tag_name(tag: str) -> str:
    """Return the part after the group, or the whole tag when ungrouped."""
    if not tag or ":" not in tag:
        return tag or ""
    return tag.split(":", 1)[1]


def is_grouped_tag(tag: str) -> bool:
    return get_tag_group(tag) is not None


def _is_group_change(old_tag: str, new_tag: Optional[str]) -> bool:
    old_group = get_tag_group(old_tag)
    new_group = get_tag_group(new_tag) if new_tag else None
    return bool(old_group and new_group and old_group != new_group)


def _trade_tags(trade: Any) -> List[str]:
    if isinstance(trade, dict):
        tags = trade.get("tags")
    else:
        tags = getattr(trade, "tags", None)
    return tags if isinstance(tags, list) else []


def update_tags_with_group_name_change(tags: List[str], old_tag: str, new_tag: str) -> List[str]:
    """Apply a tag rename to a tag registry (calendar tags and similar).

    When both tags are grouped and their groups differ, the rename moves the
    whole group: ``old_tag`` itself becomes ``new_tag`` and every other tag
    in the old group keeps its name under the new group. Otherwise only the
    first occurrence of ``old_tag`` is replaced, or removed if ``new_tag``
    is blank.

    Returns:
        A de-duplicated, sorted list. Non-list input yields an empty list.
    """
    if not isinstance(tags, list):
        return []

    new_tag = (new_tag or "").strip()

    if _is_group_change(old_tag, new_tag):
        old_group = get_tag_group(old_tag)
        new_group = get_tag_group(new_tag)
        result = []
        for tag in tags:
            if tag == old_tag:
                if new_tag:
                    result.append(new_tag)
            elif get_tag_group(tag) == old_group:
                result.append(f"{new_group}:{get_tag_name(tag)}")
            else:
                result.append(tag)
    else:
        result = list(tags)
        if old_tag in result:
            index = result.index(old_tag)
            if new_tag:
                result[index] = new_tag
            else:
                del result[index]

    return sorted({tag for tag in result if tag})


def update_trade_tags_with_group_name_change(tags: List[str], old_tag: str, new_tag: str) -> TagUpdateResult:
    """Apply a tag rename to a single trade's tags.

    Same rules as :func:`update_tags_with_group_name_change`, but the order
    of the trade's tags is preserved and no de-duplication happens. Every
    changed element counts towards ``updated_count``.
    """
    if not isinstance(tags, list):
        return TagUpdateResult()

    new_tag = (new_tag or "").strip()
    updated_count = 0

    if _is_group_change(old_tag, new_tag):
        old_group = get_tag_group(old_tag)
        new_group = get_tag_group(new_tag)
        result = []
        for tag in tags:
            if tag == old_tag:
                if new_tag:
                    result.append(new_tag)
                updated_count += 1
            elif get_tag_group(tag) == old_group:
                result.append(f"{new_group}:{get_tag_name(tag)}")
                updated_count += 1
            else:
                result.append(tag)
    else:
        result = list(tags)
        if old_tag in result:
            index = result.index(old_tag)
            if new_tag:
                result[index] = new_tag
            else:
                del result[index]
            updated_count = 1

    return TagUpdateResult(tags=result, updated=updated_count > 0, updated_count=updated_count)


def collect_tags(trades: Iterable[Any]) -> Set[str]:
    """Unique stripped, non-empty tags used by ``trades``."""
    tag_set = set()
    for trade in trades:
        for tag in _trade_tags(trade):
            if isinstance(tag, str) and tag.strip():
                tag_set.add(tag.strip())
    return tag_set


def extract_tags_from_trades(trades: Iterable[Any]) -> List[str]:
    """Sorted list of every tag used by ``trades``."""
    return sorted(collect_tags(trades))


def have_tags_changed(before_trades: Iterable[Any], after_trades: Iterable[Any]) -> bool:
    return collect_tags(before_trades) != collect_tags(after_trades)


def update_calendar_tags_from_trade_changes(
    calendar_tags: Optional[List[str]],
    before_trades: Iterable[Any],
    after_trades: Iterable[Any],
    other_trades: Iterable[Any] = (),
) -> Optional[List[str]]:
    """Compute a calendar's tag registry after some of its trades changed.

    Args:
        calendar_tags: The calendar's current tag list.
        before_trades: The changed trades as they were.
        after_trades: The changed trades as they are now.
        other_trades: Every other trade of the calendar.

    Returns:
        The new sorted tag list, or None when the registry is unchanged.
        An empty registry is rebuilt from ``after_trades`` and
        ``other_trades``. A tag that disappeared from the changed trades is
        only dropped when no other trade still uses it.
    """
    after_trades = list(after_trades)
    other_trades = list(other_trades)

    if not calendar_tags:
        rebuilt = extract_tags_from_trades(after_trades + other_trades)
        return rebuilt if rebuilt != (calendar_tags or []) else None

    before_tags = collect_tags(before_trades)
    after_tags = collect_tags(after_trades)
    added = after_tags - before_tags
    removed = before_tags - after_tags
    if not added and not removed:
        return None

    updated = set(calendar_tags)
    if removed:
        still_used = collect_tags(other_trades)
        updated -= {tag for tag in removed if tag not in still_used}
    updated |= added

    if updated == set(calendar_tags):
        return None
    return sorted(updated)


def normalize_pair_tag(tag: str) -> str:
    """Lowercase the ``pair`` group of a currency-pair tag (``Pair:EURUSD`` -> ``pair:EURUSD``)."""
    group = get_tag_group(tag)
    if group is not None and group.strip().lower() == PAIR_GROUP:
        return f"{PAIR_GROUP}:{get_tag_name(tag)}"
    return tag


def missing_required_groups(tags: Iterable[str], required_groups: Iterable[str]) -> List[str]:
    """Required tag groups with no tag present in ``tags``."""
    present = {get_tag_group(tag) for tag in tags or []}
    return [group for group in required_groups or [] if group not in present]
