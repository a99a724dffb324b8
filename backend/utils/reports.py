"""Attendance statistics and the grouped report used by the admin dashboard."""
from collections import Counter

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from absensi.extensions import db
from absensi.models import Attendance, AttendanceStatus, Role, Session, User

STATUSES = [status.value for status in AttendanceStatus]


def attendance_rate(present, late, total):
    """(present + late) / total as a percentage, 2 decimals; 0 when there is nothing to count."""
    if not total:
        return 0
    return round((present + late) / total * 100, 2)


def empty_status_counts():
    return {status: 0 for status in STATUSES}


def filter_sessions(query, start_date=None, end_date=None, batch_id=None, session_type_id=None):
    if start_date:
        query = query.filter(Session.date >= start_date)
    if end_date:
        query = query.filter(Session.date <= end_date)
    if batch_id:
        query = query.filter(Session.batch_id == batch_id)
    if session_type_id:
        query = query.filter(Session.session_type_id == session_type_id)
    return query


def get_attendance_stats(start_date=None, end_date=None, batch_id=None):
    session_ids = [
        row.id for row in
        filter_sessions(db.session.query(Session.id), start_date, end_date, batch_id).all()
    ]

    if not session_ids:
        return {
            "totalSessions": 0,
            "totalAttendanceRecords": 0,
            "statusCounts": empty_status_counts(),
            "attendanceRate": 0,
        }

    rows = db.session.query(
        Attendance.status,
        func.count(Attendance.id).label("count")
    ).filter(
        Attendance.session_id.in_(session_ids)
    ).group_by(Attendance.status).all()

    status_counts = empty_status_counts()
    for row in rows:
        status_counts[row.status.value] = row.count
    total = sum(status_counts.values())

    return {
        "totalSessions": len(session_ids),
        "totalAttendanceRecords": total,
        "statusCounts": status_counts,
        "attendanceRate": attendance_rate(status_counts["present"], status_counts["late"], total),
    }


def _group(id_, name):
    group = {"id": id_, "name": name, "totalRecords": 0}
    group.update(empty_status_counts())
    return group


def _finish(groups):
    result = []
    for key in sorted(groups):
        group = groups[key]
        group["attendanceRate"] = attendance_rate(group["present"], group["late"], group["totalRecords"])
        result.append(group)
    return result


def load_report_data(start_date=None, end_date=None, batch_id=None, division_id=None, session_type_id=None):
    """
    Sessions matching the filters (newest first), santri users (by name) in
    the requested division, and every attendance row in that cross-section.
    """
    sessions = filter_sessions(
        Session.query.options(joinedload(Session.session_type), joinedload(Session.batch)),
        start_date, end_date, batch_id, session_type_id,
    ).order_by(Session.date.desc(), Session.id.desc()).all()

    if not sessions:
        return [], [], []

    user_query = User.query.options(joinedload(User.batch), joinedload(User.division)) \
        .filter(User.role == Role.santri)
    if division_id:
        user_query = user_query.filter(User.division_id == division_id)
    users = user_query.order_by(User.name.asc()).all()

    records = []
    if users:
        records = Attendance.query.filter(
            Attendance.session_id.in_([s.id for s in sessions]),
            Attendance.user_id.in_([u.id for u in users]),
        ).order_by(Attendance.id).all()

    return sessions, users, records


def get_attendance_reports(start_date=None, end_date=None, batch_id=None, division_id=None, session_type_id=None):
    sessions, users, records = load_report_data(start_date, end_date, batch_id, division_id, session_type_id)

    session_map = {s.id: s for s in sessions}
    user_map = {u.id: u for u in users}

    by_batch = {}
    by_type = {}
    for session in sessions:
        if session.batch and session.batch.id not in by_batch:
            by_batch[session.batch.id] = _group(session.batch.id, session.batch.name)
        if session.session_type and session.session_type.id not in by_type:
            by_type[session.session_type.id] = _group(session.session_type.id, session.session_type.name)

    by_division = {}
    for user in users:
        if user.division and user.division.id not in by_division:
            by_division[user.division.id] = _group(user.division.id, user.division.name)

    status_counts = Counter()
    for record in records:
        status = record.status.value
        status_counts[status] += 1
        session = session_map.get(record.session_id)
        user = user_map.get(record.user_id)

        targets = []
        if session and session.batch_id in by_batch:
            targets.append(by_batch[session.batch_id])
        if session and session.session_type_id in by_type:
            targets.append(by_type[session.session_type_id])
        if user and user.division_id in by_division:
            targets.append(by_division[user.division_id])
        for group in targets:
            group["totalRecords"] += 1
            group[status] += 1

    by_status = empty_status_counts()
    by_status.update(status_counts)
    total = len(records)

    statistics = {
        "totalSessions": len(sessions),
        "totalUsers": len(users),
        "totalRecords": total,
        "byStatus": by_status,
        "attendanceRate": attendance_rate(by_status["present"], by_status["late"], total),
        "byBatch": _finish(by_batch),
        "byDivision": _finish(by_division),
        "bySessionType": _finish(by_type),
    }

    return {
        "sessions": [
            {
                "id": s.id,
                "date": s.date.isoformat(),
                "batchName": s.batch.name if s.batch else None,
                "sessionTypeName": s.session_type.name if s.session_type else None,
            }
            for s in sessions
        ],
        "statistics": statistics,
    }
