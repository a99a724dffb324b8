from .base_route import base_bp
from .auth import auth_bp
from .users import users_bp
from .batches import batches_bp
from .divisions import divisions_bp
from .session_types import session_types_bp
from .sessions import sessions_bp
from .attendance import attendance_bp, session_attendance_bp

def register_routes(app):
    app.register_blueprint(base_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(batches_bp, url_prefix='/batches')
    app.register_blueprint(divisions_bp, url_prefix='/divisions')
    app.register_blueprint(session_types_bp, url_prefix='/session-types')
    app.register_blueprint(sessions_bp, url_prefix='/sessions')
    app.register_blueprint(session_attendance_bp, url_prefix='/sessions')
    app.register_blueprint(attendance_bp, url_prefix='/attendance')
