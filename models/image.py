from extensions import db
from datetime import datetime


class Image(db.Model):
    __table_args__ = (
        db.Index('ix_image_owner_created', 'owner_id', 'created_at'),
        db.Index('ix_image_album_created', 'album_id', 'created_at'),
    )

    TITLE_MAX = 100
    DESCRIPTION_MAX = 500

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    album_id = db.Column(db.Integer, db.ForeignKey('album.id', ondelete='SET NULL'), nullable=True)

    url = db.Column(db.String(400), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    title = db.Column(db.String(TITLE_MAX), nullable=False)
    description = db.Column(db.String(DESCRIPTION_MAX), nullable=False, default='')

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    album = db.relationship('Album', foreign_keys=[album_id])
    tag_rows = db.relationship('ImageTag', backref='image', lazy=True, cascade="all, delete-orphan",
                               order_by='ImageTag.id')

    @property
    def tags(self):
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, names):
        self.tag_rows = [ImageTag(name=name) for name in names]

    @classmethod
    def get_owned(cls, image_id, owner_id):
        return cls.query.filter_by(id=image_id, owner_id=owner_id).first()

    @classmethod
    def is_member(cls, image_id, album_id):
        query = cls.query.filter_by(id=image_id, album_id=album_id)
        return db.session.query(query.exists()).scalar()

    @classmethod
    def members_of(cls, album_id):
        return cls.query.filter_by(album_id=album_id)

    @classmethod
    def move_many(cls, image_ids, owner_id, album_id):
        return cls.query.filter(cls.id.in_(image_ids), cls.owner_id == owner_id).update(
            {cls.album_id: album_id, cls.updated_at: datetime.utcnow()},
            synchronize_session='fetch',
        )

    @classmethod
    def detach_all(cls, album_id, owner_id):
        return cls.query.filter_by(album_id=album_id, owner_id=owner_id).update(
            {cls.album_id: None, cls.updated_at: datetime.utcnow()},
            synchronize_session='fetch',
        )

    def to_dict(self):
        album = self.album
        return {
            'id': self.id,
            'ownerId': self.owner_id,
            'albumId': self.album_id,
            'album': {'id': album.id, 'name': album.name} if album else None,
            'url': self.url,
            'originalName': self.original_name,
            'title': self.title,
            'description': self.description,
            'tags': self.tags,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }


class ImageTag(db.Model):
    NAME_MAX = 20

    id = db.Column(db.Integer, primary_key=True)
    image_id = db.Column(db.Integer, db.ForeignKey('image.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(NAME_MAX), nullable=False, index=True)
