"""Trade image storage and safe deletion.

Duplicated calendars share image files with their source calendar, so an
image is only deleted from storage when no related calendar still
references it.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradejournal.api_errors import StorageError
from tradejournal.db.models import Calendar, Trade
from tradejournal.settings import get_settings

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class ImageCleanupResult:
    """Outcome of deleting the images removed from a trade."""

    deleted: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def image_ids(images: Optional[Iterable[Any]]) -> list[str]:
    """IDs of an image list, skipping malformed entries."""
    ids = []
    for image in images or []:
        if isinstance(image, dict) and image.get("id"):
            ids.append(image["id"])
    return ids


def find_removed_images(old_images: Optional[Iterable[Any]], new_images: Optional[Iterable[Any]]) -> list[str]:
    """IDs present in ``old_images`` but no longer in ``new_images``, in original order."""
    remaining = set(image_ids(new_images))
    removed = []
    for image_id in image_ids(old_images):
        if image_id not in remaining and image_id not in removed:
            removed.append(image_id)
    return removed


def image_exists_in_calendar(session: Session, image_id: str, calendar_id: str) -> bool:
    """Whether any trade of ``calendar_id`` references ``image_id``."""
    rows = session.query(Trade.images).filter(Trade.calendar_id == calendar_id).all()
    return any(image_id in image_ids(row.images) for row in rows)


def _duplicates_of(session: Session, source_id: str, user_id: str) -> list[str]:
    rows = (
        session.query(Calendar.id)
        .filter(
            Calendar.user_id == user_id,
            Calendar.duplicated_calendar.is_(True),
            Calendar.source_calendar_id == source_id,
        )
        .all()
    )
    return [row.id for row in rows]


def can_delete_image(session: Session, image_id: str, calendar_id: str) -> bool:
    """Check whether an image file can be removed on behalf of ``calendar_id``.

    A duplicated calendar must not delete an image still used by its source
    calendar or by another duplicate of the same source. No calendar may
    delete an image still used by one of its own duplicates, which covers
    chains of duplicates. Lookup failures keep the file.
    """
    try:
        calendar = session.get(Calendar, calendar_id)
        if calendar is None:
            logger.error("Calendar %s not found", calendar_id)
            return False

        source_id = calendar.source_calendar_id
        if calendar.duplicated_calendar and source_id:
            if image_exists_in_calendar(session, image_id, source_id):
                logger.info("Image %s exists in source calendar %s, cannot delete", image_id, source_id)
                return False
            for other_id in _duplicates_of(session, source_id, calendar.user_id):
                if other_id != calendar_id and image_exists_in_calendar(session, image_id, other_id):
                    logger.info("Image %s exists in duplicated calendar %s, cannot delete", image_id, other_id)
                    return False

        for duplicate_id in _duplicates_of(session, calendar_id, calendar.user_id):
            if image_exists_in_calendar(session, image_id, duplicate_id):
                logger.info("Image %s exists in duplicated calendar %s, cannot delete", image_id, duplicate_id)
                return False
        return True
    except SQLAlchemyError:
        logger.exception("Error checking if image %s can be deleted", image_id)
        return False


class ImageStore:
    """Filesystem storage for trade images, laid out as ``<root>/<user_id>/<image_id>``."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or get_settings().image_storage_dir)

    def path_for(self, user_id: str, image_id: str) -> Path:
        return self.root / _SAFE_NAME.sub("_", user_id) / _SAFE_NAME.sub("_", image_id)

    def save(self, user_id: str, image_id: str, data: bytes, filename: Optional[str] = None) -> dict:
        """Write image bytes and return the image metadata stored on trades."""
        path = self.path_for(user_id, image_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Could not store image {image_id}: {exc}") from exc

        logger.info("Stored image %s (%d bytes)", image_id, len(data))
        return {
            "id": image_id,
            "url": path.as_posix(),
            "filename": filename or image_id,
            "storage_path": path.as_posix(),
        }

    def exists(self, user_id: str, image_id: str) -> bool:
        return self.path_for(user_id, image_id).is_file()

    def delete(self, user_id: str, image_id: str) -> bool:
        """Delete an image file. Returns False when it was already gone."""
        path = self.path_for(user_id, image_id)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Image %s not found in storage", image_id)
            return False
        except OSError as exc:
            raise StorageError(f"Could not delete image {image_id}: {exc}") from exc
        return True


def cleanup_removed_images(
    session: Session,
    store: ImageStore,
    old_images: Optional[Iterable[Any]],
    new_images: Optional[Iterable[Any]],
    calendar_id: str,
    user_id: str,
) -> ImageCleanupResult:
    """Delete the files of images dropped from a trade.

    Images that belong to another calendar, or that a related calendar
    still references, are kept. Storage errors are logged and collected,
    never raised.
    """
    old_images = list(old_images or [])
    foreign = {
        image["id"]
        for image in old_images
        if isinstance(image, dict) and image.get("calendar_id") not in (None, calendar_id)
    }

    result = ImageCleanupResult()
    for image_id in find_removed_images(old_images, new_images):
        if image_id in foreign or not can_delete_image(session, image_id, calendar_id):
            result.kept.append(image_id)
            continue
        try:
            store.delete(user_id, image_id)
            result.deleted.append(image_id)
        except StorageError:
            logger.exception("Error deleting image %s", image_id)
            result.failed.append(image_id)

    if result.deleted:
        logger.info("Deleted %d image(s) from calendar %s", len(result.deleted), calendar_id)
    return result
