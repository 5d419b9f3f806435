# Album covers are re-derived from membership after every membership change.
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.album import Album
from models.image import Image


def fallback_key(image):
    return (image.created_at or datetime.min, image.id or 0)


def select_fallback_cover(members):
    """Return the most recently created image in ``members``, or None.

    Ties on ``created_at`` go to the higher id, so the choice is stable
    across calls.
    """
    return max(members, key=fallback_key, default=None)


def _current_fallback(album_id):
    members = (
        Image.members_of(album_id)
        .with_entities(Image.id, Image.created_at)
        .order_by(Image.created_at.desc(), Image.id.desc())
        .limit(1)
        .all()
    )
    fallback = select_fallback_cover(members)
    return fallback.id if fallback else None


def _write_cover(album, image_id):
    Album.write_cover(album.id, image_id)
    db.session.commit()
    current_app.logger.info("Album %s cover set to %s", album.id, image_id)
    return True


def ensure_cover_integrity(album_id):
    """Make the album's cover null or a current member. Returns True if it wrote."""
    if not album_id:
        return False
    album = db.session.get(Album, album_id)
    if album is None:
        return False

    if album.cover_image_id is not None and Image.is_member(album.cover_image_id, album.id):
        return False

    fallback_id = _current_fallback(album.id)
    if fallback_id == album.cover_image_id:
        return False
    return _write_cover(album, fallback_id)


def ensure_cover_presence(album_id, candidate_image_id=None):
    """Give a non-empty album a cover, preferring ``candidate_image_id``.

    The candidate is trusted to be a member; callers pass the image they have
    just put into the album. Without a candidate the fallback is used.
    """
    if not album_id:
        return False
    album = db.session.get(Album, album_id)
    if album is None:
        return False

    if album.cover_image_id is None:
        cover_id = candidate_image_id if candidate_image_id is not None else _current_fallback(album.id)
        if cover_id is None:
            return False
        return _write_cover(album, cover_id)

    return ensure_cover_integrity(album.id)


def repair_cover_integrity(album_id):
    try:
        return ensure_cover_integrity(album_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Cover integrity repair failed for album %s", album_id)
        return False


def repair_cover_presence(album_id, candidate_image_id=None):
    try:
        return ensure_cover_presence(album_id, candidate_image_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Cover presence repair failed for album %s", album_id)
        return False
