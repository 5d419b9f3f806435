import os
import re
import time
import uuid

from flask import current_app
from PIL import Image as PILImage, UnidentifiedImageError
from werkzeug.utils import secure_filename

from errors import ValidationError

UPLOAD_URL_PREFIX = "/uploads/"
_UPLOAD_URL_RE = re.compile(r"^/?uploads/(.+)$")


def upload_folder():
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


def save_upload(file, fieldname="image"):
    """Store an uploaded image and return its public url."""
    if file is None or not file.filename:
        raise ValidationError("Please select an image file to upload")
    if not (file.mimetype or "").startswith("image/"):
        raise ValidationError("Only image files are allowed")

    try:
        PILImage.open(file.stream).verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError("Only image files are allowed")
    file.stream.seek(0)

    ext = os.path.splitext(secure_filename(file.filename))[1].lower()
    name = f"{fieldname}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"
    file.save(os.path.join(upload_folder(), name))
    return UPLOAD_URL_PREFIX + name


def resolve_upload_path(public_url):
    if not public_url:
        return None
    normalized = str(public_url).replace("\\", "/")
    match = _UPLOAD_URL_RE.match(normalized)
    if not match:
        return None
    filename = os.path.basename(match.group(1))
    if not filename:
        return None
    return os.path.join(current_app.config["UPLOAD_FOLDER"], filename)


def delete_upload(public_url):
    """Remove a stored file. Never raises; returns True if a file was removed."""
    path = resolve_upload_path(public_url)
    if path is None:
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        current_app.logger.warning("Stored file already missing: %s", path)
        return False
    except OSError:
        current_app.logger.warning("Could not delete stored file %s", path, exc_info=True)
        return False
    return True
