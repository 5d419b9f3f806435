# Membership changes commit first, then repair the covers of the albums they touched.
from flask import current_app
from sqlalchemy import func, or_

from errors import NotFoundError, ValidationError
from extensions import db
from models.album import Album
from models.image import Image, ImageTag
from services import covers, storage
from services.fields import clean_tags, clean_text, parse_id, parse_id_list
from services.pagination import build_order_by, pagination_meta


def _clean_title(title):
    title = clean_text(title, Image.TITLE_MAX, f"Title must be {Image.TITLE_MAX} characters or fewer")
    if not title:
        raise ValidationError("Image title is required")
    return title


def _clean_description(description):
    return clean_text(
        description, Image.DESCRIPTION_MAX,
        f"Description must be {Image.DESCRIPTION_MAX} characters or fewer",
    )


def _owned_album_or_none(owner_id, album_id, error_cls=ValidationError, message="Album not found"):
    album_id = parse_id(album_id, "Invalid album id")
    if album_id is None:
        return None
    album = Album.get_owned(album_id, owner_id)
    if album is None:
        raise error_cls(message)
    return album


def get_owned_image(owner_id, image_id):
    image_id = parse_id(image_id, "Invalid image id")
    image = Image.get_owned(image_id, owner_id) if image_id else None
    if image is None:
        raise NotFoundError("Image not found")
    return image


def _search_filter(keyword):
    pattern = f"%{keyword}%"
    return or_(
        Image.title.ilike(pattern),
        Image.description.ilike(pattern),
        Image.tag_rows.any(ImageTag.name.ilike(pattern)),
    )


def list_images(owner_id, tag=None, search=None, album_id=None, sort_by="createdAt",
                sort_order="desc", page=1, limit=20):
    query = Image.query.filter(Image.owner_id == owner_id)

    if tag:
        query = query.filter(Image.tag_rows.any(ImageTag.name == tag))
    if search and search.strip():
        query = query.filter(_search_filter(search.strip()))
    if album_id:
        query = query.filter(Image.album_id == parse_id(album_id, "Invalid album id"))

    columns = {
        "createdAt": Image.created_at,
        "updatedAt": Image.updated_at,
        "title": Image.title,
    }
    query = query.order_by(*build_order_by(sort_by, sort_order, columns, Image.created_at))

    pager = query.paginate(page=page, per_page=limit, error_out=False)
    return [image.to_dict() for image in pager.items], pagination_meta(page, limit, pager.total)


def tag_stats(owner_id):
    count = func.count(ImageTag.id)
    rows = (
        db.session.query(ImageTag.name, count)
        .join(Image, Image.id == ImageTag.image_id)
        .filter(Image.owner_id == owner_id)
        .group_by(ImageTag.name)
        .order_by(count.desc(), ImageTag.name)
        .all()
    )
    return [{"name": name, "count": total} for name, total in rows]


def upload_image(owner_id, file, fields):
    """Store ``file`` and create an image, optionally inside an album.

    All validation, including the target album, happens before the file is
    written or the row inserted.
    """
    title = _clean_title(fields.get("title"))
    description = _clean_description(fields.get("description"))
    tags = clean_tags(fields.get("tags"))
    album = _owned_album_or_none(owner_id, fields.get("albumId"))

    url = storage.save_upload(file)
    image = Image(
        owner_id=owner_id,
        album_id=album.id if album else None,
        url=url,
        original_name=file.filename,
        title=title,
        description=description,
    )
    image.tags = tags
    db.session.add(image)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage.delete_upload(url)
        raise

    current_app.logger.info("User %s uploaded image %s into album %s", owner_id, image.id, image.album_id)
    if image.album_id is not None:
        covers.repair_cover_presence(image.album_id, image.id)
    return image


def update_image(owner_id, image_id, fields):
    """Partial update. ``albumId`` present and falsy removes the image from its album."""
    image = get_owned_image(owner_id, image_id)
    previous_album_id = image.album_id
    next_album_id = previous_album_id

    changes = {}
    if fields.get("title"):
        changes["title"] = _clean_title(fields["title"])
    if "description" in fields:
        changes["description"] = _clean_description(fields["description"])
    if "tags" in fields:
        changes["tags"] = clean_tags(fields["tags"])
    if "albumId" in fields:
        album = _owned_album_or_none(owner_id, fields["albumId"])
        next_album_id = album.id if album else None
        changes["album_id"] = next_album_id

    for attr, value in changes.items():
        setattr(image, attr, value)
    db.session.commit()

    if previous_album_id is not None and previous_album_id != next_album_id:
        covers.repair_cover_integrity(previous_album_id)
    if next_album_id is not None:
        covers.repair_cover_presence(next_album_id, image.id)
    return image


def bulk_move_images(owner_id, image_ids, target_album_id):
    """Move the owner's images into ``target_album_id`` (or out of any album).

    Returns ``(moved_count, target_album_or_None)``.
    """
    ids = parse_id_list(image_ids)
    if not ids:
        raise ValidationError("Image ids are required")

    images = Image.query.filter(Image.id.in_(ids), Image.owner_id == owner_id).all()
    if not images:
        raise NotFoundError("No images found for the given ids")

    album_of = {image.id: image.album_id for image in images}
    moved_ids = [image_id for image_id in ids if image_id in album_of]
    previous_album_ids = []
    for image_id in moved_ids:
        album_id = album_of[image_id]
        if album_id is not None and album_id not in previous_album_ids:
            previous_album_ids.append(album_id)

    target = _owned_album_or_none(owner_id, target_album_id, NotFoundError, "Target album not found")
    target_id = target.id if target else None

    moved = Image.move_many(moved_ids, owner_id, target_id)
    db.session.commit()
    current_app.logger.info("User %s moved %d images to album %s", owner_id, moved, target_id)

    for album_id in previous_album_ids:
        if album_id != target_id:
            covers.repair_cover_integrity(album_id)
    if target_id is not None:
        covers.repair_cover_presence(target_id, moved_ids[0])
    return moved, target


def delete_image(owner_id, image_id):
    image = get_owned_image(owner_id, image_id)
    album_id = image.album_id
    url = image.url

    db.session.delete(image)
    db.session.commit()
    current_app.logger.info("User %s deleted image %s", owner_id, image_id)

    # the deleted row no longer shows up as a member, so this picks another one
    if album_id is not None:
        covers.repair_cover_integrity(album_id)

    storage.delete_upload(url)
