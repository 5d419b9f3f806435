from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from routes import request_data
from services import albums as album_service
from services.pagination import parse_pagination

bp = Blueprint("albums", __name__)


def _list_args():
    page, limit = parse_pagination(request.args)
    return dict(
        search=request.args.get("search"),
        sort_by=request.args.get("sortBy", "createdAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        page=page,
        limit=limit,
    )


@bp.route("", methods=["GET"])
@login_required
def list_albums():
    albums, pagination = album_service.list_albums(current_user.id, **_list_args())
    return jsonify({"status": "success", "albums": albums, "pagination": pagination})


@bp.route("", methods=["POST"])
@login_required
def create_album():
    data = request_data()
    album = album_service.create_album(current_user.id, data.get("name"), data.get("description"))
    return jsonify({"status": "success", "message": "Album created successfully", "album": album.to_dict()}), 201


@bp.route("/<album_id>")
@login_required
def album_detail(album_id):
    album = album_service.get_owned_album(current_user.id, album_id)
    return jsonify({"status": "success", "album": album.to_dict(image_count=album_service.count_images(album))})


@bp.route("/<album_id>/images")
@login_required
def album_images(album_id):
    album, images, pagination = album_service.list_album_images(current_user.id, album_id, **_list_args())
    return jsonify({"status": "success", "album": album.to_dict(), "images": images, "pagination": pagination})


@bp.route("/<album_id>", methods=["PUT"])
@login_required
def update_album(album_id):
    album = album_service.update_album(current_user.id, album_id, request_data())
    return jsonify({"status": "success", "message": "Album updated successfully", "album": album.to_dict()})


@bp.route("/<album_id>", methods=["DELETE"])
@login_required
def delete_album(album_id):
    album_service.delete_album(current_user.id, album_id)
    return jsonify({"status": "success", "message": "Album deleted successfully"})


@bp.route("/<album_id>/cover", methods=["POST"])
@login_required
def set_cover(album_id):
    image_id = request_data().get("imageId")
    album = album_service.set_album_cover(current_user.id, album_id, image_id)
    message = "Album cover updated successfully" if album.cover_image_id else "Album cover cleared"
    return jsonify({"status": "success", "message": message, "album": album.to_dict()})
