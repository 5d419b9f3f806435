import os

import pytest

from errors import ConflictError, NotFoundError, ValidationError
from extensions import db
from models.album import Album
from models.image import Image
from services import albums as album_service
from services import covers
from services import images as image_service

from conftest import add_album, add_image, album_of, cover_of, make_upload


def upload(owner_id, album_id=None, title='Photo', **fields):
    fields.update(title=title, albumId=album_id)
    return image_service.upload_image(owner_id, make_upload(), fields).id


# --- the five album/cover scenarios ---

def test_deleting_newest_cover_falls_back_to_next_newest(ctx, owner):
    album = add_album(owner)
    add_image(owner, album, minutes=1)
    i2 = add_image(owner, album, minutes=2)
    i3 = add_image(owner, album, minutes=3)
    covers.ensure_cover_integrity(album)
    assert cover_of(album) == i3

    image_service.delete_image(owner, i3)

    assert cover_of(album) == i2


def test_upload_into_empty_album_sets_cover(ctx, owner, app):
    album = add_album(owner)
    image_id = upload(owner, album)

    assert cover_of(album) == image_id
    stored = db.session.get(Image, image_id)
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], os.path.basename(stored.url)))


def test_moving_only_member_clears_old_cover_and_fills_new(ctx, owner):
    a = add_album(owner, name='A')
    b = add_album(owner, name='B')
    i1 = upload(owner, a)
    assert cover_of(a) == i1

    image_service.update_image(owner, i1, {'albumId': b})

    assert cover_of(a) is None
    assert cover_of(b) == i1


def test_bulk_move_repairs_source_and_fills_target(ctx, owner):
    a = add_album(owner, name='A')
    c = add_album(owner, name='C')
    i1 = add_image(owner, a, minutes=3)
    i2 = add_image(owner, a, minutes=2)
    i3 = add_image(owner, a, minutes=1)
    covers.ensure_cover_integrity(a)
    assert cover_of(a) == i1

    moved, target = image_service.bulk_move_images(owner, [i1, i2, i1], c)

    assert moved == 2
    assert target.id == c
    assert cover_of(a) == i3
    assert cover_of(c) == i1
    assert album_of(i1) == c and album_of(i2) == c


def test_bulk_move_leaves_valid_source_cover_alone(ctx, owner):
    a = add_album(owner, name='A')
    c = add_album(owner, name='C')
    i1 = add_image(owner, a, minutes=1)
    i2 = add_image(owner, a, minutes=2)
    i3 = add_image(owner, a, minutes=3)
    covers.ensure_cover_integrity(a)
    assert cover_of(a) == i3

    image_service.bulk_move_images(owner, [i1, i2], c)

    assert cover_of(a) == i3
    assert cover_of(c) == i1


def test_deleting_album_detaches_members(ctx, owner):
    a = add_album(owner)
    i1 = upload(owner, a)
    i2 = upload(owner, a)

    detached = album_service.delete_album(owner, a)

    assert detached == 2
    assert album_of(i1) is None
    assert album_of(i2) is None
    assert db.session.get(Album, a) is None
    assert Image.query.filter_by(album_id=a).count() == 0


# --- upload ---

def test_upload_into_album_with_cover_keeps_cover(ctx, owner):
    album = add_album(owner)
    first = upload(owner, album)
    upload(owner, album)
    assert cover_of(album) == first


def test_upload_rejects_foreign_album_before_writing(ctx, owner, stranger, app):
    theirs = add_album(stranger)
    with pytest.raises(ValidationError, match='Album not found'):
        upload(owner, theirs)
    assert Image.query.count() == 0
    assert os.listdir(app.config['UPLOAD_FOLDER']) == []


def test_upload_requires_title(ctx, owner):
    with pytest.raises(ValidationError, match='title is required'):
        upload(owner, title='  ')


def test_upload_rejects_long_tags(ctx, owner):
    with pytest.raises(ValidationError):
        upload(owner, tags='ok, ' + 'x' * 21)


def test_upload_stores_trimmed_unique_tags(ctx, owner):
    image_id = upload(owner, tags='beach, sunset ,beach,')
    assert db.session.get(Image, image_id).tags == ['beach', 'sunset']


def test_upload_rejects_non_image_bytes(ctx, owner):
    from io import BytesIO
    from werkzeug.datastructures import FileStorage

    fake = FileStorage(stream=BytesIO(b'not an image'), filename='a.png', content_type='image/png')
    with pytest.raises(ValidationError, match='Only image files'):
        image_service.upload_image(owner, fake, {'title': 'x'})


# --- single update ---

def test_update_within_same_album_keeps_cover(ctx, owner):
    album = add_album(owner)
    first = upload(owner, album)
    second = upload(owner, album)

    image_service.update_image(owner, second, {'albumId': album, 'title': 'Renamed'})

    assert cover_of(album) == first
    assert db.session.get(Image, second).title == 'Renamed'


def test_update_removing_from_album_repairs_cover(ctx, owner):
    album = add_album(owner)
    first = add_image(owner, album, minutes=1)
    second = add_image(owner, album, minutes=2)
    covers.ensure_cover_integrity(album)
    assert cover_of(album) == second

    image_service.update_image(owner, second, {'albumId': None})

    assert album_of(second) is None
    assert cover_of(album) == first


def test_update_without_album_key_leaves_membership(ctx, owner):
    album = add_album(owner)
    image_id = upload(owner, album)
    image_service.update_image(owner, image_id, {'description': 'new'})
    assert album_of(image_id) == album


def test_update_to_foreign_album_is_rejected_without_write(ctx, owner, stranger):
    mine = add_album(owner)
    theirs = add_album(stranger, name='Theirs')
    image_id = upload(owner, mine)

    with pytest.raises(ValidationError):
        image_service.update_image(owner, image_id, {'albumId': theirs, 'title': 'Changed'})

    assert album_of(image_id) == mine
    assert db.session.get(Image, image_id).title == 'Photo'


def test_update_of_foreign_image_is_not_found(ctx, owner, stranger):
    image_id = add_image(stranger)
    with pytest.raises(NotFoundError):
        image_service.update_image(owner, image_id, {'title': 'mine now'})


def test_update_succeeds_when_repair_fails(ctx, owner, monkeypatch, caplog):
    a = add_album(owner, name='A')
    b = add_album(owner, name='B')
    image_id = upload(owner, a)

    def store_down(*args):
        from sqlalchemy.exc import OperationalError
        raise OperationalError("UPDATE", {}, Exception("connection lost"))

    monkeypatch.setattr(covers, 'ensure_cover_integrity', store_down)

    image_service.update_image(owner, image_id, {'albumId': b})

    assert album_of(image_id) == b
    assert cover_of(a) == image_id  # stale until the next repair of A
    assert 'Cover integrity repair failed' in caplog.text

    monkeypatch.undo()
    covers.ensure_cover_integrity(a)
    assert cover_of(a) is None


# --- bulk move ---

def test_bulk_move_out_of_albums(ctx, owner):
    a = add_album(owner, name='A')
    b = add_album(owner, name='B')
    i1 = upload(owner, a)
    i2 = upload(owner, b)

    moved, target = image_service.bulk_move_images(owner, [i1, i2], None)

    assert (moved, target) == (2, None)
    assert cover_of(a) is None
    assert cover_of(b) is None


def test_bulk_move_ignores_foreign_and_invalid_ids(ctx, owner, stranger):
    target = add_album(owner)
    theirs = add_image(stranger)
    mine = add_image(owner)

    moved, _ = image_service.bulk_move_images(owner, ['oops', theirs, mine, str(mine)], target)

    assert moved == 1
    assert album_of(theirs) is None
    assert cover_of(target) == mine


def test_bulk_move_requires_ids(ctx, owner):
    with pytest.raises(ValidationError):
        image_service.bulk_move_images(owner, [], None)
    with pytest.raises(ValidationError):
        image_service.bulk_move_images(owner, 'not-a-list', None)


def test_bulk_move_unknown_target_aborts(ctx, owner, stranger):
    source = add_album(owner)
    theirs = add_album(stranger, name='Theirs')
    image_id = add_image(owner, source)

    with pytest.raises(NotFoundError, match='Target album not found'):
        image_service.bulk_move_images(owner, [image_id], theirs)
    assert album_of(image_id) == source


def test_bulk_move_of_no_owned_images_is_not_found(ctx, owner, stranger):
    theirs = add_image(stranger)
    with pytest.raises(NotFoundError):
        image_service.bulk_move_images(owner, [theirs], None)


# --- delete image ---

def test_deleting_non_cover_member_keeps_cover(ctx, owner):
    album = add_album(owner)
    first = upload(owner, album)
    second = upload(owner, album)

    image_service.delete_image(owner, second)

    assert cover_of(album) == first


def test_deleting_last_member_clears_cover(ctx, owner):
    album = add_album(owner)
    only = upload(owner, album)
    image_service.delete_image(owner, only)
    assert cover_of(album) is None


def test_delete_removes_stored_file(ctx, owner, app):
    image_id = upload(owner)
    path = os.path.join(app.config['UPLOAD_FOLDER'], os.path.basename(db.session.get(Image, image_id).url))
    assert os.path.exists(path)

    image_service.delete_image(owner, image_id)

    assert not os.path.exists(path)


def test_delete_survives_missing_file(ctx, owner, caplog):
    album = add_album(owner)
    image_id = add_image(owner, album)  # url points at a file that was never written

    image_service.delete_image(owner, image_id)

    assert db.session.get(Image, image_id) is None
    assert 'already missing' in caplog.text


def test_delete_foreign_image_is_not_found(ctx, owner, stranger):
    image_id = add_image(stranger)
    with pytest.raises(NotFoundError):
        image_service.delete_image(owner, image_id)
    assert db.session.get(Image, image_id) is not None


# --- albums ---

def test_create_album_trims_and_rejects_duplicates(ctx, owner, stranger):
    album = album_service.create_album(owner, '  Holidays  ', ' summer ')
    assert (album.name, album.description) == ('Holidays', 'summer')

    with pytest.raises(ConflictError):
        album_service.create_album(owner, 'Holidays')
    # names are only unique per owner
    album_service.create_album(stranger, 'Holidays')


@pytest.mark.parametrize('name,description', [('', None), ('x' * 51, None), ('ok', 'y' * 201)])
def test_create_album_validation(ctx, owner, name, description):
    with pytest.raises(ValidationError):
        album_service.create_album(owner, name, description)
    assert Album.query.count() == 0


def test_rename_to_existing_name_conflicts(ctx, owner):
    album_service.create_album(owner, 'One')
    two = album_service.create_album(owner, 'Two')
    with pytest.raises(ConflictError):
        album_service.update_album(owner, two.id, {'name': 'One'})


def test_explicit_cover_requires_membership(ctx, owner, stranger):
    album = add_album(owner)
    other = add_album(owner, name='Other')
    member = add_image(owner, album, minutes=1)
    newer = add_image(owner, album, minutes=2)
    outsider = add_image(owner, other)
    foreign = add_image(stranger)

    album_service.set_album_cover(owner, album, member)
    assert cover_of(album) == member

    for bad in (outsider, foreign, 999):
        with pytest.raises(NotFoundError):
            album_service.set_album_cover(owner, album, bad)
    assert cover_of(album) == member

    album_service.update_album(owner, album, {'coverImageId': newer})
    assert cover_of(album) == newer
    with pytest.raises(ValidationError):
        album_service.update_album(owner, album, {'coverImageId': outsider})

    album_service.set_album_cover(owner, album, None)
    assert cover_of(album) is None


def test_album_listing_counts_and_sorts(ctx, owner):
    small = add_album(owner, name='Small')
    big = add_album(owner, name='Big')
    add_image(owner, small)
    for minutes in range(3):
        add_image(owner, big, minutes=minutes)
    add_album(owner, name='Empty')

    albums, meta = album_service.list_albums(owner, sort_by='imageCount', sort_order='desc')

    assert [a['name'] for a in albums] == ['Big', 'Small', 'Empty']
    assert [a['imageCount'] for a in albums] == [3, 1, 0]
    assert meta == {'current': 1, 'pages': 1, 'total': 3, 'limit': 20}

    albums, _ = album_service.list_albums(owner, search='sma')
    assert [a['name'] for a in albums] == ['Small']


def _store_down(*args):
    from sqlalchemy.exc import OperationalError
    raise OperationalError("UPDATE", {}, Exception("connection lost"))


def test_upload_succeeds_when_repair_fails(ctx, owner, monkeypatch, caplog):
    album = add_album(owner)
    monkeypatch.setattr(covers, 'ensure_cover_presence', _store_down)

    image_id = upload(owner, album)

    assert album_of(image_id) == album
    assert cover_of(album) is None
    assert 'Cover presence repair failed' in caplog.text

    monkeypatch.undo()
    covers.ensure_cover_presence(album)
    assert cover_of(album) == image_id


def test_bulk_move_succeeds_when_repairs_fail(ctx, owner, monkeypatch, caplog):
    a = add_album(owner, name='A')
    c = add_album(owner, name='C')
    i1 = add_image(owner, a, minutes=2)
    i2 = add_image(owner, a, minutes=1)
    covers.ensure_cover_integrity(a)
    monkeypatch.setattr(covers, 'ensure_cover_integrity', _store_down)
    monkeypatch.setattr(covers, 'ensure_cover_presence', _store_down)

    moved, _ = image_service.bulk_move_images(owner, [i1], c)

    assert moved == 1
    assert album_of(i1) == c
    assert cover_of(a) == i1
    assert cover_of(c) is None
    assert 'Cover integrity repair failed' in caplog.text
    assert 'Cover presence repair failed' in caplog.text

    monkeypatch.undo()
    covers.ensure_cover_integrity(a)
    covers.ensure_cover_presence(c)
    assert cover_of(a) == i2
    assert cover_of(c) == i1


def test_delete_succeeds_when_repair_fails(ctx, owner, monkeypatch, caplog):
    album = add_album(owner)
    older = add_image(owner, album, minutes=1)
    newer = add_image(owner, album, minutes=2)
    covers.ensure_cover_integrity(album)
    monkeypatch.setattr(covers, 'ensure_cover_integrity', _store_down)

    image_service.delete_image(owner, newer)

    assert db.session.get(Image, newer) is None
    assert 'Cover integrity repair failed' in caplog.text

    monkeypatch.undo()
    covers.ensure_cover_integrity(album)
    assert cover_of(album) == older


def test_delete_survives_unremovable_file(ctx, owner, monkeypatch, caplog, app):
    from services import storage

    image_id = upload(owner)
    url = db.session.get(Image, image_id).url

    def permission_denied(path):
        raise PermissionError(13, 'Permission denied', path)

    monkeypatch.setattr(storage.os, 'remove', permission_denied)
    image_service.delete_image(owner, image_id)

    assert db.session.get(Image, image_id) is None
    assert 'Could not delete stored file' in caplog.text
    assert storage.delete_upload(url) is False
    monkeypatch.undo()
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], os.path.basename(url)))
