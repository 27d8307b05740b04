"""Tests for tradejournal.trades.images: image storage and safe deletion."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from tradejournal.trades.images import (
    can_delete_image,
    cleanup_removed_images,
    find_removed_images,
    image_exists_in_calendar,
    image_ids,
)


def _image(image_id, calendar_id=None):
    image = {"id": image_id, "url": f"/images/{image_id}"}
    if calendar_id:
        image["calendar_id"] = calendar_id
    return image


class TestRemovedImages:
    def test_ids_skip_malformed(self):
        assert image_ids([_image("a"), {"url": "x"}, "junk", None]) == ["a"]

    def test_removed(self):
        old = [_image("a"), _image("b"), _image("c")]
        assert find_removed_images(old, [_image("b")]) == ["a", "c"]

    def test_nothing_removed(self):
        assert find_removed_images([_image("a")], [_image("a")]) == []
        assert find_removed_images(None, None) == []


class TestImageStore:
    def test_save_and_delete(self, image_store):
        meta = image_store.save("user-1", "img-1", b"png-bytes", filename="chart.png")

        assert meta["id"] == "img-1"
        assert meta["filename"] == "chart.png"
        assert image_store.exists("user-1", "img-1")
        assert image_store.delete("user-1", "img-1") is True
        assert not image_store.exists("user-1", "img-1")

    def test_delete_missing(self, image_store):
        assert image_store.delete("user-1", "nope") is False

    def test_unsafe_names_stay_inside_root(self, image_store):
        path = image_store.path_for("../evil", "../../x")
        assert image_store.root in path.parents


class TestCanDeleteImage:
    @pytest.fixture
    def family(self, make_calendar):
        source = make_calendar(name="Source")
        first = make_calendar(name="Copy 1", duplicated_calendar=True, source_calendar_id=source.id)
        second = make_calendar(name="Copy 2", duplicated_calendar=True, source_calendar_id=source.id)
        return source, first, second

    def test_unreferenced_image(self, session, family):
        source, _, _ = family
        assert can_delete_image(session, "img", source.id)

    def test_source_keeps_image_used_by_duplicate(self, session, family, make_trade):
        source, first, _ = family
        make_trade(first, images=[_image("img")])
        assert image_exists_in_calendar(session, "img", first.id)
        assert not can_delete_image(session, "img", source.id)

    def test_duplicate_keeps_image_used_by_source(self, session, family, make_trade):
        source, first, _ = family
        make_trade(source, images=[_image("img")])
        assert not can_delete_image(session, "img", first.id)

    def test_duplicate_keeps_image_used_by_sibling(self, session, family, make_trade):
        _, first, second = family
        make_trade(second, images=[_image("img")])
        assert not can_delete_image(session, "img", first.id)

    def test_duplicate_keeps_image_used_by_its_own_duplicate(self, session, family, make_calendar, make_trade):
        _, first, _ = family
        grandchild = make_calendar(name="Copy of copy", duplicated_calendar=True, source_calendar_id=first.id)
        make_trade(grandchild, images=[_image("img")])
        assert not can_delete_image(session, "img", first.id)

    def test_unknown_calendar(self, session):
        assert not can_delete_image(session, "img", "missing")

    def test_database_error_keeps_file(self, session, family, monkeypatch):
        source, _, _ = family

        def fail(*args, **kwargs):
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(session, "get", fail)
        assert can_delete_image(session, "img", source.id) is False


class TestCleanupRemovedImages:
    def test_deletes_unshared_files(self, session, make_calendar, image_store):
        calendar = make_calendar()
        image_store.save("user-1", "a", b"1")
        image_store.save("user-1", "b", b"2")

        result = cleanup_removed_images(
            session, image_store, [_image("a"), _image("b")], [_image("b")], calendar.id, "user-1"
        )

        assert result.deleted == ["a"]
        assert not image_store.exists("user-1", "a")
        assert image_store.exists("user-1", "b")

    def test_foreign_images_kept(self, session, make_calendar, image_store):
        calendar = make_calendar()
        image_store.save("user-1", "a", b"1")

        result = cleanup_removed_images(
            session, image_store, [_image("a", calendar_id="other")], [], calendar.id, "user-1"
        )

        assert result.kept == ["a"]
        assert image_store.exists("user-1", "a")

    def test_missing_file_is_not_a_failure(self, session, make_calendar, image_store):
        calendar = make_calendar()
        result = cleanup_removed_images(session, image_store, [_image("gone")], [], calendar.id, "user-1")
        assert result.deleted == ["gone"]
        assert result.failed == []
