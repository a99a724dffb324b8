from flask import request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from absensi.extensions import db
from absensi.models import AuditLog
from utils.audit import log_event

RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


def log_rate_limit_violation():
    """Persist a rate-limit breach, attributed to the caller when a valid token is present."""
    try:
        verify_jwt_in_request(optional=True)
        identity = get_jwt_identity()
    except (JWTExtendedException, PyJWTError):
        identity = None
    user_id = int(identity) if identity else None

    entry = AuditLog(
        user_id=user_id,
        action=RATE_LIMIT_EXCEEDED,
        method=request.method,
        path=request.path,
        ip_address=request.remote_addr,
    )
    db.session.add(entry)
    db.session.commit()

    log_event(RATE_LIMIT_EXCEEDED, user_id=user_id, ip=request.remote_addr,
              description=f"{request.method} {request.path}", level="WARNING")
    return entry
