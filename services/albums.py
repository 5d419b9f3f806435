from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from errors import ConflictError, NotFoundError, ValidationError
from extensions import db
from models.album import Album
from models.image import Image
from services.fields import clean_text, parse_id
from services.pagination import build_order_by, pagination_meta
from services import images as image_service


def _clean_name(name, empty_message):
    name = clean_text(name, Album.NAME_MAX, f"Album name must be {Album.NAME_MAX} characters or fewer")
    if not name:
        raise ValidationError(empty_message)
    return name


def _clean_description(description):
    return clean_text(
        description, Album.DESCRIPTION_MAX,
        f"Album description must be {Album.DESCRIPTION_MAX} characters or fewer",
    )


def _check_unique_name(owner_id, name, album_id=None):
    query = Album.query.filter(Album.owner_id == owner_id, Album.name == name)
    if album_id is not None:
        query = query.filter(Album.id != album_id)
    if query.first() is not None:
        raise ConflictError("Album name already exists")


def _commit_album():
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race with a concurrent create/rename
        db.session.rollback()
        raise ConflictError("Album name already exists")


def get_owned_album(owner_id, album_id):
    album_id = parse_id(album_id, "Invalid album id")
    album = Album.get_owned(album_id, owner_id) if album_id else None
    if album is None:
        raise NotFoundError("Album not found")
    return album


def count_images(album):
    return Image.query.filter_by(album_id=album.id, owner_id=album.owner_id).count()


def list_albums(owner_id, search=None, sort_by="createdAt", sort_order="desc", page=1, limit=20):
    counts = (
        db.session.query(Image.album_id.label("album_id"), func.count(Image.id).label("image_count"))
        .filter(Image.owner_id == owner_id, Image.album_id.isnot(None))
        .group_by(Image.album_id)
        .subquery()
    )
    image_count = func.coalesce(counts.c.image_count, 0)

    query = (
        db.session.query(Album, image_count)
        .outerjoin(counts, counts.c.album_id == Album.id)
        .filter(Album.owner_id == owner_id)
    )
    if search and search.strip():
        query = query.filter(Album.name.ilike(f"%{search.strip()}%"))

    columns = {
        "createdAt": Album.created_at,
        "updatedAt": Album.updated_at,
        "name": Album.name,
        "imageCount": image_count,
    }
    query = query.order_by(*build_order_by(sort_by, sort_order, columns, Album.created_at))

    pager = query.paginate(page=page, per_page=limit, error_out=False)
    albums = [album.to_dict(image_count=count) for album, count in pager.items]
    return albums, pagination_meta(page, limit, pager.total)


def create_album(owner_id, name, description=None):
    name = _clean_name(name, "Album name is required")
    description = _clean_description(description)
    _check_unique_name(owner_id, name)

    album = Album(owner_id=owner_id, name=name, description=description)
    db.session.add(album)
    _commit_album()
    current_app.logger.info("User %s created album %s", owner_id, album.id)
    return album


def _validated_cover(owner_id, album, image_id, error_cls, message):
    image_id = parse_id(image_id, "Invalid image id")
    image = Image.get_owned(image_id, owner_id)
    if image is None or image.album_id != album.id:
        raise error_cls(message)
    return image.id


def update_album(owner_id, album_id, fields):
    """Apply a partial update; only keys present in ``fields`` are touched."""
    album = get_owned_album(owner_id, album_id)

    changes = {}
    if "name" in fields:
        changes["name"] = _clean_name(fields["name"], "Album name cannot be empty")
        _check_unique_name(owner_id, changes["name"], album.id)
    if "description" in fields:
        changes["description"] = _clean_description(fields["description"])
    if "coverImageId" in fields:
        cover_id = fields["coverImageId"]
        changes["cover_image_id"] = _validated_cover(
            owner_id, album, cover_id, ValidationError, "Cover image must be an image in this album"
        ) if cover_id else None

    for attr, value in changes.items():
        setattr(album, attr, value)
    _commit_album()
    return album


def set_album_cover(owner_id, album_id, image_id):
    """Explicit, validated cover assignment. Clears the cover when ``image_id`` is falsy."""
    album = get_owned_album(owner_id, album_id)
    if not image_id:
        album.cover_image_id = None
    else:
        album.cover_image_id = _validated_cover(
            owner_id, album, image_id, NotFoundError, "Image not found in this album"
        )
    db.session.commit()
    current_app.logger.info("Album %s cover explicitly set to %s", album.id, album.cover_image_id)
    return album


def delete_album(owner_id, album_id):
    album = get_owned_album(owner_id, album_id)

    # members survive the album, they just lose their membership
    detached = Image.detach_all(album.id, owner_id)
    album.cover_image_id = None
    db.session.flush()
    db.session.delete(album)
    db.session.commit()
    current_app.logger.info("User %s deleted album %s, detached %d images", owner_id, album_id, detached)
    return detached


def list_album_images(owner_id, album_id, search=None, sort_by="createdAt", sort_order="desc", page=1, limit=20):
    album = get_owned_album(owner_id, album_id)
    images, meta = image_service.list_images(
        owner_id, search=search, album_id=album.id, sort_by=sort_by,
        sort_order=sort_order, page=page, limit=limit,
    )
    return album, images, meta
