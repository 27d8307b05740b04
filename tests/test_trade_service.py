"""Tests for tradejournal.trades.service: TradeService and linked-calendar sync."""

from datetime import datetime, timedelta

import pytest

from tradejournal.api_errors import AuthorizationError, ErrorCode, NotFoundError, ValidationError
from tradejournal.db.models import Trade, utcnow
from tradejournal.trades import TradeService, derive_trade_type
from tradejournal.trades.sync import (
    calculate_synced_amount,
    is_within_sync_window,
    prepare_synced_trade,
    sync_window_hours_remaining,
)
from tradejournal.stats.risk import DynamicRiskSettings


@pytest.fixture
def service(session, image_store):
    return TradeService(session, image_store=image_store)


class TestAddTrade:
    def test_derives_type_and_updates_calendar(self, service, make_calendar):
        calendar = make_calendar(account_balance=1000.0)

        trade = service.add_trade(
            calendar.id, "user-1", amount=-25.0, trade_date=datetime(2025, 3, 10, 9), tags=["Setup:A", " "]
        )

        assert trade.trade_type == "loss"
        assert trade.tags == ["Setup:A"]
        assert calendar.tags == ["Setup:A"]
        assert calendar.total_trades == 1
        assert calendar.current_balance == 975.0

    def test_explicit_type_kept(self, service, make_calendar):
        calendar = make_calendar()
        trade = service.add_trade(
            calendar.id, "user-1", amount=0.0, trade_type="WIN", trade_date=datetime(2025, 3, 10)
        )
        assert trade.trade_type == "win"

    def test_notes_are_escaped(self, service, make_calendar):
        calendar = make_calendar()
        trade = service.add_trade(
            calendar.id, "user-1", amount=1.0, trade_date=datetime(2025, 3, 10), notes="<b>ok</b>"
        )
        assert trade.notes == "&lt;b&gt;ok&lt;/b&gt;"

    def test_required_fields(self, service, make_calendar):
        calendar = make_calendar()
        with pytest.raises(ValidationError) as exc_info:
            service.add_trade(calendar.id, "user-1", amount=10.0)
        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED_FIELD

    def test_unknown_field(self, service, make_calendar):
        calendar = make_calendar()
        with pytest.raises(ValidationError):
            service.add_trade(calendar.id, "user-1", amount=1.0, trade_date=datetime(2025, 3, 10), colour="red")

    def test_required_tag_groups(self, service, make_calendar):
        calendar = make_calendar(required_tag_groups=["Setup"])
        with pytest.raises(ValidationError) as exc_info:
            service.add_trade(calendar.id, "user-1", amount=1.0, trade_date=datetime(2025, 3, 10), tags=["Other:X"])
        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED_TAGS

        temporary = service.add_trade(
            calendar.id, "user-1", amount=1.0, trade_date=datetime(2025, 3, 10), is_temporary=True
        )
        assert temporary.is_temporary

    def test_other_users_calendar(self, service, make_calendar):
        calendar = make_calendar(user_id="owner")
        with pytest.raises(AuthorizationError):
            service.add_trade(calendar.id, "intruder", amount=1.0, trade_date=datetime(2025, 3, 10))

    def test_derive_trade_type(self):
        assert derive_trade_type(5) == "win"
        assert derive_trade_type(-5) == "loss"
        assert derive_trade_type(0) == "breakeven"


class TestQueries:
    def test_get_trade_checks_calendar(self, service, make_calendar, make_trade):
        first = make_calendar()
        second = make_calendar(name="Other")
        trade = make_trade(first)

        assert service.get_trade(first.id, trade.id) is trade
        with pytest.raises(NotFoundError):
            service.get_trade(second.id, trade.id)

    def test_list_filters(self, service, make_calendar, make_trade):
        calendar = make_calendar()
        make_trade(calendar, 1.0, datetime(2025, 3, 1, 9), tags=["a"])
        make_trade(calendar, 2.0, datetime(2025, 3, 5, 23), tags=["b"], is_pinned=True)
        make_trade(calendar, 3.0, datetime(2025, 3, 9, 9))

        def amounts(**kwargs):
            return [t.amount for t in service.list_trades(calendar.id, **kwargs)]

        assert amounts() == [1.0, 2.0, 3.0]
        assert amounts(start_date=datetime(2025, 3, 2), end_date=datetime(2025, 3, 5)) == [2.0]
        assert amounts(tags=["a", "b"]) == [1.0, 2.0]
        assert amounts(pinned_only=True) == [2.0]
        assert amounts(page=2, page_size=2) == [3.0]


class TestUpdateTrade:
    def test_amount_change_rederives_type(self, service, make_calendar, make_trade):
        calendar = make_calendar()
        trade = make_trade(calendar, 100.0)

        service.update_trade(calendar.id, trade.id, "user-1", amount=-30.0)

        assert trade.trade_type == "loss"
        assert calendar.total_pnl == -30.0

    def test_tag_change_updates_registry(self, service, make_calendar, make_trade):
        calendar = make_calendar(tags=["old"])
        trade = make_trade(calendar, tags=["old"])

        service.update_trade(calendar.id, trade.id, "user-1", tags=["new"])

        assert calendar.tags == ["new"]

    def test_removed_image_deleted(self, service, make_calendar, make_trade, image_store):
        calendar = make_calendar()
        image_store.save("user-1", "img", b"data")
        trade = make_trade(calendar, images=[{"id": "img", "calendar_id": calendar.id}])

        service.update_trade(calendar.id, trade.id, "user-1", images=[])

        assert not image_store.exists("user-1", "img")

    def test_toggle_pin(self, service, make_calendar, make_trade):
        calendar = make_calendar()
        trade = make_trade(calendar)
        assert service.toggle_pin(calendar.id, trade.id, "user-1").is_pinned
        assert not service.toggle_pin(calendar.id, trade.id, "user-1").is_pinned


class TestDeleteTrades:
    def test_delete_updates_tags_and_stats(self, service, session, make_calendar, make_trade):
        calendar = make_calendar(tags=["a", "b"])
        keep = make_trade(calendar, 10.0, tags=["a"])
        drop = make_trade(calendar, 20.0, tags=["b"])

        assert service.delete_trade(calendar.id, drop.id, "user-1")

        assert session.get(Trade, drop.id) is None
        assert session.get(Trade, keep.id) is not None
        assert calendar.tags == ["a"]
        assert calendar.total_pnl == 10.0

    def test_clear_month(self, service, session, make_calendar, make_trade):
        calendar = make_calendar()
        make_trade(calendar, 1.0, datetime(2025, 3, 1))
        make_trade(calendar, 2.0, datetime(2025, 3, 31, 23))
        make_trade(calendar, 3.0, datetime(2025, 4, 1))

        assert service.clear_month_trades(calendar.id, 2025, 3, "user-1") == 2
        assert [t.amount for t in session.query(Trade).all()] == [3.0]
        assert service.clear_month_trades(calendar.id, 2025, 3, "user-1") == 0


class TestImportTrades:
    def test_pair_tags(self, service, make_calendar):
        calendar = make_calendar()

        created = service.import_trades(calendar.id, "user-1", [
            {"amount": 10.0, "trade_date": datetime(2025, 3, 3), "tags": ["Pair:EURUSD"]},
            {"amount": -5.0, "trade_date": datetime(2025, 3, 4), "pair": "GBPUSD", "tags": []},
        ])

        assert [t.tags for t in created] == [["pair:EURUSD"], ["pair:GBPUSD"]]
        assert calendar.tags == ["pair:EURUSD", "pair:GBPUSD"]
        assert calendar.total_trades == 2


class TestLinkedCalendarSync:
    @pytest.fixture
    def linked(self, make_calendar):
        target = make_calendar(name="Funded", account_balance=10000.0, risk_per_trade=1.0)
        source = make_calendar(name="Personal", linked_to_calendar_id=target.id)
        return source, target

    def _copies(self, session, target):
        return session.query(Trade).filter(Trade.calendar_id == target.id).all()

    def test_new_trade_copied_with_target_risk(self, service, session, linked):
        source, target = linked

        trade = service.add_trade(
            source.id, "user-1", amount=50.0, risk_to_reward=2.0, trade_date=datetime(2025, 3, 3), tags=["x"]
        )

        copies = self._copies(session, target)
        assert len(copies) == 1
        assert copies[0].source_trade_id == trade.id
        assert copies[0].is_synced_copy
        assert copies[0].amount == 200
        assert target.tags == ["x"]
        assert target.total_pnl == 200

    def test_update_follows_within_window(self, service, session, linked):
        source, target = linked
        trade = service.add_trade(
            source.id, "user-1", amount=50.0, risk_to_reward=2.0, trade_date=datetime(2025, 3, 3)
        )

        service.update_trade(source.id, trade.id, "user-1", amount=-50.0)

        copy = self._copies(session, target)[0]
        assert copy.trade_type == "loss"
        assert copy.amount == -100

    def test_delete_removes_copy(self, service, session, linked):
        source, target = linked
        trade = service.add_trade(source.id, "user-1", amount=5.0, trade_date=datetime(2025, 3, 3))

        service.delete_trade(source.id, trade.id, "user-1")

        assert self._copies(session, target) == []

    def test_copy_left_alone_after_window(self, service, session, linked):
        source, target = linked
        trade = service.add_trade(
            source.id, "user-1", amount=50.0, risk_to_reward=2.0, trade_date=datetime(2025, 3, 3)
        )
        trade.created_at = utcnow() - timedelta(hours=25)
        session.commit()

        service.update_trade(source.id, trade.id, "user-1", amount=-50.0)
        copy = self._copies(session, target)[0]
        assert copy.amount == 200
        assert copy.trade_type == "win"

        service.delete_trade(source.id, trade.id, "user-1")
        copies = self._copies(session, target)
        assert [c.id for c in copies] == [copy.id]
        assert copies[0].amount == 200

    def test_trashed_target_not_synced(self, service, session, linked):
        source, target = linked
        target.deleted_at = datetime(2025, 3, 1)
        session.commit()

        service.add_trade(source.id, "user-1", amount=5.0, trade_date=datetime(2025, 3, 3))

        assert self._copies(session, target) == []


class TestSyncHelpers:
    def _trade(self, **fields):
        values = dict(
            id="t1", amount=50.0, trade_type="win", risk_to_reward=2.0, partials_taken=False,
            trade_date=datetime(2025, 3, 3), tags=["a"], images=[{"id": "i"}],
            created_at=datetime(2025, 3, 3, 12),
        )
        values.update(fields)
        return Trade(**values)

    def test_raw_amount_without_target_risk(self):
        assert calculate_synced_amount(self._trade(), DynamicRiskSettings(10000.0)) == 50.0

    def test_partials_keep_amount(self):
        settings = DynamicRiskSettings(10000.0, risk_per_trade=1.0)
        assert calculate_synced_amount(self._trade(partials_taken=True), settings) == 50.0

    def test_cumulative_pnl_grows_risk(self):
        settings = DynamicRiskSettings(10000.0, risk_per_trade=1.0)
        assert calculate_synced_amount(self._trade(), settings, cumulative_pnl=1000.0) == 220

    def test_dynamic_risk_applies_past_threshold(self):
        settings = DynamicRiskSettings(
            10000.0, risk_per_trade=1.0, dynamic_risk_enabled=True,
            increased_risk_percentage=2.0, profit_threshold_percentage=5.0,
        )
        assert calculate_synced_amount(self._trade(), settings, cumulative_pnl=400.0) == 208
        assert calculate_synced_amount(self._trade(), settings, cumulative_pnl=600.0) == 424

    def test_prepare_copies_lists(self):
        trade = self._trade()
        values = prepare_synced_trade(trade, "target")
        assert values["calendar_id"] == "target"
        assert values["source_trade_id"] == "t1"
        assert values["tags"] == ["a"]
        assert values["tags"] is not trade.tags
        assert "id" not in values

    def test_window(self):
        trade = self._trade()
        now = trade.created_at + timedelta(hours=10)
        assert is_within_sync_window(trade, now)
        assert sync_window_hours_remaining(trade, now) == pytest.approx(14.0)
        assert not is_within_sync_window(trade, trade.created_at + timedelta(hours=25))
