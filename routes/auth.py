from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user, current_user, login_required

from errors import AuthError, ValidationError
from extensions import db
from models.user import User
from routes import request_data

bp = Blueprint("auth", __name__)

USERNAME_MIN = 3
USERNAME_MAX = 30
PASSWORD_MIN = 6


def validate_username(username):
    if username is not None and not isinstance(username, str):
        raise ValidationError("Username must be a string")
    username = (username or "").strip()
    if len(username) < USERNAME_MIN:
        raise ValidationError(f"Username must be at least {USERNAME_MIN} characters")
    if len(username) > USERNAME_MAX:
        raise ValidationError(f"Username must be {USERNAME_MAX} characters or fewer")
    return username


def validate_password(password, message="Password must be at least 6 characters"):
    if not isinstance(password, str) or len(password) < PASSWORD_MIN:
        raise ValidationError(message)
    return password


@bp.route("/register", methods=["POST"])
def register():
    data = request_data()
    if not data.get("username") or not data.get("password"):
        raise ValidationError("Username and password are required")
    username = validate_username(data["username"])
    password = validate_password(data["password"])

    if User.query.filter_by(username=username).first():
        raise ValidationError("Username already exists")
    new_user = User(username=username)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user, remember=True)
    current_app.logger.info("Registered user %s", new_user.id)
    return jsonify({"status": "success", "message": "Registered successfully", "user": new_user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
def login():
    data = request_data()
    username = data.get("username")
    password = data.get("password")
    if not username or not password:
        raise ValidationError("Username and password are required")
    if not isinstance(username, str) or not isinstance(password, str):
        raise AuthError("Invalid username or password")
    user = User.query.filter_by(username=username.strip()).first()
    if user is None or not user.check_password(password):
        raise AuthError("Invalid username or password")
    login_user(user, remember=True)
    return jsonify({"status": "success", "message": "Login successful", "user": user.to_dict()})


@bp.route("/verify")
@login_required
def verify():
    return jsonify({"status": "success", "user": current_user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"status": "success", "message": "Logged out successfully"})
