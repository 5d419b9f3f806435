from datetime import datetime, timedelta
from io import BytesIO

import pytest
from PIL import Image as PILImage
from werkzeug.datastructures import FileStorage

from app import create_app
from config import TestConfig
from extensions import db
from models.album import Album
from models.image import Image
from models.user import User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def make_image_bytes(format='PNG'):
    img = PILImage.new('RGB', (100, 100), color=(123, 222, 64))
    buf = BytesIO()
    img.save(buf, format=format)
    buf.seek(0)
    return buf


def make_upload(filename='sample.png'):
    return FileStorage(stream=make_image_bytes(), filename=filename, content_type='image/png')


@pytest.fixture
def app(tmp_path):
    application = create_app(TestConfig)
    upload_dir = tmp_path / 'uploads'
    upload_dir.mkdir()
    application.config['UPLOAD_FOLDER'] = str(upload_dir)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """An app context for calling services and models directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    rv = client.post('/api/auth/register', json={'username': 'alice', 'password': 'secret123'})
    assert rv.status_code == 201
    client.user_id = rv.get_json()['user']['id']
    return client


@pytest.fixture
def owner(ctx):
    user = User(username='owner')
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user.id


@pytest.fixture
def stranger(ctx):
    user = User(username='stranger')
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user.id


def add_album(owner_id, name='Trip', cover_image_id=None):
    album = Album(owner_id=owner_id, name=name, cover_image_id=cover_image_id)
    db.session.add(album)
    db.session.commit()
    return album.id


def add_image(owner_id, album_id=None, minutes=0, title='Photo'):
    """Insert an image row directly, ``minutes`` after a fixed base time."""
    image = Image(
        owner_id=owner_id,
        album_id=album_id,
        url=f'/uploads/{title.lower()}-{minutes}.png',
        original_name=f'{title}.png',
        title=title,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )
    db.session.add(image)
    db.session.commit()
    return image.id


def cover_of(album_id):
    db.session.expire_all()
    return db.session.get(Album, album_id).cover_image_id


def album_of(image_id):
    db.session.expire_all()
    return db.session.get(Image, image_id).album_id
