from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from errors import ValidationError
from extensions import db
from models.user import User
from routes import request_data
from routes.auth import validate_password, validate_username
from services import storage

bp = Blueprint("users", __name__)


@bp.route("/me")
@login_required
def me():
    return jsonify({"status": "success", "user": current_user.to_dict()})


@bp.route("/me", methods=["PUT"])
@login_required
def update_me():
    data = request_data()
    user = db.session.get(User, current_user.id)

    raw_username = data.get("username")
    if not raw_username or (isinstance(raw_username, str) and not raw_username.strip()):
        raise ValidationError("Username is required")
    username = validate_username(raw_username)
    if username != user.username:
        taken = User.query.filter(User.username == username, User.id != user.id).first()
        if taken:
            raise ValidationError("Username already exists")
        user.username = username

    new_password = data.get("newPassword")
    if new_password:
        current_password = data.get("currentPassword")
        if not current_password:
            raise ValidationError("Current password is required to set a new password")
        validate_password(new_password, "New password must be at least 6 characters")
        if not user.check_password(current_password):
            raise ValidationError("Current password is incorrect")
        user.set_password(new_password)

    db.session.commit()
    return jsonify({"status": "success", "message": "Profile updated successfully", "user": user.to_dict()})


@bp.route("/me/avatar", methods=["POST"])
@login_required
def upload_avatar():
    user = db.session.get(User, current_user.id)
    url = storage.save_upload(request.files.get("image"), fieldname="avatar")
    previous = user.avatar_url
    user.avatar_url = url
    db.session.commit()
    if previous:
        storage.delete_upload(previous)
    return jsonify({"status": "success", "message": "Avatar updated successfully", "avatarUrl": url})


@bp.route("/me/avatar", methods=["DELETE"])
@login_required
def delete_avatar():
    user = db.session.get(User, current_user.id)
    if not user.avatar_url:
        raise ValidationError("Avatar not set")
    previous = user.avatar_url
    user.avatar_url = None
    db.session.commit()
    storage.delete_upload(previous)
    return jsonify({"status": "success", "message": "Avatar removed successfully"})
