"""
Attendance engine: default roll generation for sessions plus the idempotent
create, bulk update and filtered upsert operations used by staff.

Functions here stage changes on ``db.session``; the ones that represent a whole
request-level operation also commit, the helpers used by the session routes do
not so the caller can commit the session row and its roll together.
"""
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from absensi.extensions import db
from absensi.models import Attendance, AttendanceStatus, Role, User
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.validation import parse_enum, parse_int

NOT_PROVIDED = object()


def santri_ids_for_batch(batch_id):
    query = db.session.query(User.id).filter(User.batch_id == batch_id, User.role == Role.santri)
    return [row.id for row in query.order_by(User.id).all()]


def existing_user_ids(session_id, user_ids):
    if not user_ids:
        return set()
    rows = db.session.query(Attendance.user_id).filter(
        Attendance.session_id == session_id,
        Attendance.user_id.in_(user_ids),
    ).all()
    return {row.user_id for row in rows}


def _unique(ids):
    return list(dict.fromkeys(ids))


def require_users(user_ids):
    """Raise NotFoundError naming every id in ``user_ids`` with no User row."""
    found = {row.id for row in db.session.query(User.id).filter(User.id.in_(user_ids)).all()}
    missing = [user_id for user_id in _unique(user_ids) if user_id not in found]
    if missing:
        raise NotFoundError(f"Users not found: {', '.join(str(i) for i in missing)}")


def add_default_attendance(session):
    """Stage one ``absent`` row, without verifier, per santri of the session's batch."""
    rows = [
        Attendance(session=session, user_id=user_id, status=AttendanceStatus.absent)
        for user_id in santri_ids_for_batch(session.batch_id)
    ]
    db.session.add_all(rows)
    return rows


def regenerate_default_attendance(session):
    """Drop the session's roll and rebuild it for the (new) batch."""
    for attendance in list(session.attendances):
        session.attendances.remove(attendance)
    db.session.flush()
    return add_default_attendance(session)


def _insert_missing(session, user_ids, status, verifier):
    now = datetime.utcnow()
    already = existing_user_ids(session.id, user_ids)
    new_ids = [user_id for user_id in _unique(user_ids) if user_id not in already]
    return [
        Attendance(
            session_id=session.id,
            user_id=user_id,
            status=status,
            verified_by=verifier.id,
            verified_at=now,
        )
        for user_id in new_ids
    ]


def create_attendance_records(session, user_ids, verifier, default_status=None):
    """
    Insert rows for the given users, skipping any (session, user) pair that
    already has one. Raises ConflictError when every user is already covered.
    """
    status = parse_enum(AttendanceStatus, default_status or AttendanceStatus.absent.value)
    require_users(user_ids)
    rows = _insert_missing(session, user_ids, status, verifier)
    if not rows:
        raise ConflictError("All specified users already have attendance records for this session")

    db.session.add_all(rows)
    db.session.commit()
    return rows


def generate_attendance_for_batch(session, verifier, default_status=None):
    if not session.batch_id:
        raise ValidationError("Session is not associated with any batch")

    status = parse_enum(AttendanceStatus, default_status or AttendanceStatus.absent.value)
    user_ids = santri_ids_for_batch(session.batch_id)
    if not user_ids:
        raise NotFoundError(f"No users found in batch {session.batch.name}")

    rows = _insert_missing(session, user_ids, status, verifier)
    if not rows:
        raise ConflictError("All users in this batch already have attendance records for this session")

    db.session.add_all(rows)
    db.session.commit()
    return rows


def bulk_update_attendance(session, attendance_data, verifier):
    """
    Apply ``[{id, status, notes?}]`` to rows of this session. Every entry is
    validated before anything is written; entries whose id is not a row of
    this session are skipped. All updates are committed together.
    """
    if not isinstance(attendance_data, list) or not attendance_data:
        raise ValidationError("attendanceData must be a non-empty array")

    changes = []
    for item in attendance_data:
        if not isinstance(item, dict) or not item.get("id") or not item.get("status"):
            raise ValidationError("Each attendance item must have id and status")
        changes.append((
            parse_int(item["id"], "id"),
            parse_enum(AttendanceStatus, item["status"]),
            item.get("notes", NOT_PROVIDED),
        ))

    rows = {
        row.id: row
        for row in Attendance.query.filter(
            Attendance.session_id == session.id,
            Attendance.id.in_([attendance_id for attendance_id, _, _ in changes]),
        ).all()
    }

    now = datetime.utcnow()
    updated = []
    for attendance_id, status, notes in changes:
        row = rows.get(attendance_id)
        if row is None:
            continue
        row.status = status
        if notes is not NOT_PROVIDED:
            row.notes = notes
        row.verified_by = verifier.id
        row.verified_at = now
        if row not in updated:
            updated.append(row)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return updated


def bulk_create_update_filtered_attendance(session, user_ids, status, verifier, notes=NOT_PROVIDED):
    """
    Upsert one row per user with ``status``: existing rows are updated, missing
    ones created. The whole call is a single transaction; any failure rolls
    every write back.
    """
    status = parse_enum(AttendanceStatus, status)
    user_ids = _unique(user_ids)
    now = datetime.utcnow()

    try:
        require_users(user_ids)
        existing = Attendance.query.filter(
            Attendance.session_id == session.id,
            Attendance.user_id.in_(user_ids),
        ).all()
        existing_ids = {row.user_id for row in existing}

        for row in existing:
            row.status = status
            if notes is not NOT_PROVIDED:
                row.notes = notes
            row.verified_by = verifier.id
            row.verified_at = now

        created = [
            Attendance(
                session_id=session.id,
                user_id=user_id,
                status=status,
                notes=None if notes is NOT_PROVIDED else notes,
                verified_by=verifier.id,
                verified_at=now,
            )
            for user_id in user_ids
            if user_id not in existing_ids
        ]
        db.session.add_all(created)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    return existing, created


def update_attendance(attendance, status, verifier, notes=NOT_PROVIDED, check_in_time=None):
    attendance.status = parse_enum(AttendanceStatus, status)
    if notes is not NOT_PROVIDED:
        attendance.notes = notes
    if check_in_time is not None:
        attendance.check_in_time = check_in_time
    attendance.verified_by = verifier.id
    attendance.verified_at = datetime.utcnow()
    db.session.commit()
    return attendance


def users_for_attendance(session, batch_id=None, division_id=None):
    """Santri candidates for a session's roll, each paired with their row (or None)."""
    query = User.query.filter(User.role == Role.santri)

    batch_id = batch_id or session.batch_id
    if batch_id:
        query = query.filter(User.batch_id == batch_id)
    if division_id:
        query = query.filter(User.division_id == division_id)

    users = query.order_by(User.name.asc()).all()
    rows = {
        row.user_id: row
        for row in Attendance.query.filter(
            Attendance.session_id == session.id,
            Attendance.user_id.in_([u.id for u in users]),
        ).all()
    } if users else {}

    return [(user, rows.get(user.id)) for user in users]
