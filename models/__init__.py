from models.user import User
from models.album import Album
from models.image import Image, ImageTag

__all__ = ["User", "Album", "Image", "ImageTag"]
