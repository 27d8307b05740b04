"""Tests for tradejournal.calendars.service: CalendarService."""

from datetime import datetime

import pytest

from tradejournal.api_errors import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from tradejournal.calendars import CalendarService
from tradejournal.db.models import Trade


@pytest.fixture
def service(session):
    return CalendarService(session)


class TestCreateCalendar:
    def test_create(self, service):
        calendar = service.create_calendar("user-1", "  Swing  ", account_balance=5000, weekly_target=2.5)

        assert calendar.id
        assert calendar.name == "Swing"
        assert calendar.account_balance == 5000.0
        assert calendar.current_balance == 5000.0
        assert calendar.weekly_target == 2.5
        assert calendar.tags == []
        assert calendar.required_tag_groups == []

    def test_name_is_escaped(self, service):
        assert service.create_calendar("user-1", "<Main>").name == "&lt;Main&gt;"

    def test_blank_name(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_calendar("user-1", "   ")
        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED_FIELD

    def test_negative_balance(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_calendar("user-1", "Main", account_balance=-1)
        assert exc_info.value.error_code == ErrorCode.INVALID_AMOUNT

    def test_unknown_setting(self, service):
        with pytest.raises(ValidationError):
            service.create_calendar("user-1", "Main", colour="blue")


class TestReadCalendars:
    def test_get_checks_owner(self, service, make_calendar):
        calendar = make_calendar(user_id="owner")

        assert service.get_calendar(calendar.id) is calendar
        assert service.get_calendar(calendar.id, "owner") is calendar
        with pytest.raises(AuthorizationError):
            service.get_calendar(calendar.id, "someone-else")

    def test_get_unknown(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_calendar("missing")
        assert exc_info.value.error_code == ErrorCode.CALENDAR_NOT_FOUND

    def test_user_calendars_skip_trash(self, service, make_calendar):
        live = make_calendar(name="Live")
        trashed = make_calendar(name="Old", deleted_at=datetime(2025, 1, 1))
        make_calendar(user_id="user-2")

        assert {c.id for c in service.get_user_calendars("user-1")} == {live.id}
        assert {c.id for c in service.get_user_calendars("user-1", include_deleted=True)} == {live.id, trashed.id}


class TestUpdateCalendar:
    def test_balance_change_refreshes_stats(self, service, make_calendar, make_trade):
        calendar = make_calendar(account_balance=1000.0)
        make_trade(calendar, 100.0)

        service.update_calendar(calendar.id, "user-1", account_balance=2000.0)

        assert calendar.current_balance == 2100.0
        assert calendar.total_pnl == 100.0

    def test_plain_setting(self, service, make_calendar):
        calendar = make_calendar()
        service.update_calendar(calendar.id, "user-1", required_tag_groups=("Setup",), hero_image_url="https://img")
        assert calendar.required_tag_groups == ["Setup"]
        assert calendar.hero_image_url == "https://img"

    def test_other_user(self, service, make_calendar):
        calendar = make_calendar()
        with pytest.raises(AuthorizationError):
            service.update_calendar(calendar.id, "user-2", name="Mine")


class TestDuplicateCalendar:
    def test_settings_only(self, service, session, make_calendar, make_trade):
        source = make_calendar(
            account_balance=2500.0,
            risk_per_trade=0.5,
            required_tag_groups=["Setup"],
            score_settings={"selected_tags": ["a"]},
            tags=["a"],
        )
        make_trade(source, tags=["a"])

        copy = service.duplicate_calendar("user-1", source.id, "Copy")

        assert copy.id != source.id
        assert copy.duplicated_calendar
        assert copy.source_calendar_id == source.id
        assert copy.account_balance == 2500.0
        assert copy.risk_per_trade == 0.5
        assert copy.required_tag_groups == ["Setup"]
        assert copy.score_settings == {"selected_tags": ["a"]}
        assert copy.tags == []
        assert session.query(Trade).filter(Trade.calendar_id == copy.id).count() == 0

    def test_with_content(self, service, session, make_calendar, make_trade):
        source = make_calendar(account_balance=1000.0, tags=["a", "b"])
        original = make_trade(source, 50.0, tags=["b", "a"], images=[{"id": "img"}], is_shared=True, share_id="s1")

        copy = service.duplicate_calendar("user-1", source.id, "Copy", include_content=True)

        trades = session.query(Trade).filter(Trade.calendar_id == copy.id).all()
        assert len(trades) == 1
        assert trades[0].id != original.id
        assert trades[0].images == [{"id": "img"}]
        assert trades[0].is_shared is False
        assert trades[0].share_id is None
        assert copy.tags == ["a", "b"]
        assert copy.current_balance == 1050.0


class TestStats:
    def test_recalculate_and_read(self, service, make_calendar, make_trade):
        calendar = make_calendar(account_balance=100.0)
        make_trade(calendar, 10.0)
        make_trade(calendar, -4.0)

        stats = service.recalculate_stats(calendar.id)

        assert stats.total_trades == 2
        assert service.get_stats(calendar.id).total_pnl == 6.0


class TestLinking:
    def test_link_and_unlink(self, service, make_calendar):
        source = make_calendar(name="A")
        target = make_calendar(name="B")

        assert service.link_calendar(source.id, target.id, "user-1").linked_to_calendar_id == target.id
        assert service.unlink_calendar(source.id, "user-1").linked_to_calendar_id is None

    def test_self_link(self, service, make_calendar):
        calendar = make_calendar()
        with pytest.raises(ValidationError):
            service.link_calendar(calendar.id, calendar.id, "user-1")

    def test_cycle_rejected(self, service, make_calendar):
        source = make_calendar(name="A")
        target = make_calendar(name="B", linked_to_calendar_id=source.id)
        with pytest.raises(ConflictError):
            service.link_calendar(source.id, target.id, "user-1")

    def test_longer_cycle_rejected(self, service, make_calendar):
        a = make_calendar(name="A")
        b = make_calendar(name="B")
        c = make_calendar(name="C")
        service.link_calendar(a.id, b.id, "user-1")
        service.link_calendar(b.id, c.id, "user-1")

        with pytest.raises(ConflictError):
            service.link_calendar(c.id, a.id, "user-1")
        assert c.linked_to_calendar_id is None

    def test_trashed_target_rejected(self, service, make_calendar):
        source = make_calendar(name="A")
        target = make_calendar(name="B", deleted_at=datetime(2025, 1, 1))
        with pytest.raises(ConflictError):
            service.link_calendar(source.id, target.id, "user-1")

    def test_foreign_target_rejected(self, service, make_calendar):
        source = make_calendar(name="A")
        target = make_calendar(user_id="user-2", name="B")
        with pytest.raises(AuthorizationError):
            service.link_calendar(source.id, target.id, "user-1")
