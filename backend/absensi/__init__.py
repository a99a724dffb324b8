import logging

from flask import Flask
from flask_cors import CORS
from .config import Config
from absensi.extensions import db, jwt, limiter, migrate


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        app.logger.setLevel(logging.INFO)

    db.init_app(app)
    jwt.init_app(app)
    CORS(app, origins=app.config["CORS_ORIGINS"], supports_credentials=True)
    limiter.init_app(app)
    migrate.init_app(app, db)

    from absensi.models import TokenBlocklist
    from absensi.routes import register_routes
    from utils.errors import register_error_handlers

    register_routes(app)
    register_error_handlers(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        jti = jwt_payload["jti"]
        token = db.session.query(TokenBlocklist.id).filter_by(jti=jti).first()
        return token is not None

    with app.app_context():
        db.create_all()

    return app
