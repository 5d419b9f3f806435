from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from routes import request_data
from services import images as image_service
from services.pagination import parse_pagination

bp = Blueprint("images", __name__)


@bp.route("", methods=["GET"])
@login_required
def list_images():
    page, limit = parse_pagination(request.args)
    images, pagination = image_service.list_images(
        current_user.id,
        tag=request.args.get("tag"),
        search=request.args.get("search"),
        album_id=request.args.get("albumId"),
        sort_by=request.args.get("sortBy", "createdAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        page=page,
        limit=limit,
    )
    return jsonify({"status": "success", "images": images, "pagination": pagination})


@bp.route("/tags/all")
@login_required
def all_tags():
    return jsonify({"status": "success", "tags": image_service.tag_stats(current_user.id)})


@bp.route("/<image_id>")
@login_required
def image_detail(image_id):
    image = image_service.get_owned_image(current_user.id, image_id)
    return jsonify({"status": "success", "image": image.to_dict()})


@bp.route("", methods=["POST"])
@login_required
def upload():
    fields = request.form.to_dict()
    tags = request.form.getlist("tags")
    if len(tags) > 1:
        fields["tags"] = tags
    image = image_service.upload_image(current_user.id, request.files.get("image"), fields)
    return jsonify({"status": "success", "message": "Image uploaded successfully", "image": image.to_dict()}), 201


@bp.route("/<image_id>", methods=["PUT"])
@login_required
def update_image(image_id):
    image = image_service.update_image(current_user.id, image_id, request_data())
    return jsonify({"status": "success", "message": "Image updated successfully", "image": image.to_dict()})


@bp.route("/bulk/move", methods=["POST"])
@login_required
def bulk_move():
    data = request_data()
    moved, target = image_service.bulk_move_images(current_user.id, data.get("imageIds"), data.get("targetAlbumId"))
    message = "Images moved to album successfully" if target else "Images removed from album successfully"
    return jsonify({"status": "success", "message": message, "moved": moved})


@bp.route("/<image_id>", methods=["DELETE"])
@login_required
def delete_image(image_id):
    image_service.delete_image(current_user.id, image_id)
    return jsonify({"status": "success", "message": "Image deleted successfully"})
