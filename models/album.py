from extensions import db
from datetime import datetime


class Album(db.Model):
    __table_args__ = (
        db.UniqueConstraint('owner_id', 'name', name='uq_album_owner_name'),
        db.Index('ix_album_owner_created', 'owner_id', 'created_at'),
    )

    NAME_MAX = 50
    DESCRIPTION_MAX = 200

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    name = db.Column(db.String(NAME_MAX), nullable=False)
    description = db.Column(db.String(DESCRIPTION_MAX), nullable=False, default='')

    # Derived pointer, kept consistent with membership by services.covers.
    # Album and Image reference each other, so this side is created via ALTER.
    cover_image_id = db.Column(
        db.Integer,
        db.ForeignKey('image.id', use_alter=True, name='fk_album_cover_image', ondelete='SET NULL'),
        nullable=True,
    )

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    cover_image = db.relationship('Image', foreign_keys=[cover_image_id], viewonly=True)

    @classmethod
    def get_owned(cls, album_id, owner_id):
        return cls.query.filter_by(id=album_id, owner_id=owner_id).first()

    @classmethod
    def write_cover(cls, album_id, image_id):
        cls.query.filter_by(id=album_id).update(
            {cls.cover_image_id: image_id, cls.updated_at: datetime.utcnow()},
            synchronize_session='fetch',
        )

    def to_dict(self, image_count=None):
        cover = self.cover_image
        data = {
            'id': self.id,
            'ownerId': self.owner_id,
            'name': self.name,
            'description': self.description,
            'coverImageId': self.cover_image_id,
            'coverImage': {'id': cover.id, 'url': cover.url, 'title': cover.title} if cover else None,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }
        if image_count is not None:
            data['imageCount'] = image_count
        return data
