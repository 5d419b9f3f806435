from flask import request


def request_data():
    """JSON body if there is one, form fields otherwise."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def register_blueprints(app):
    from routes.auth import bp as auth_bp
    from routes.users import bp as users_bp
    from routes.albums import bp as albums_bp
    from routes.images import bp as images_bp
    from routes.uploads import bp as uploads_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(albums_bp, url_prefix="/api/albums")
    app.register_blueprint(images_bp, url_prefix="/api/images")
    app.register_blueprint(uploads_bp)
