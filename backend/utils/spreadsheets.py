"""CSV / Excel import of users and CSV export of attendance reports (pandas)."""
from io import BytesIO

import pandas as pd

from absensi.extensions import db
from absensi.models import Batch, Division, Role, User
from utils.errors import ValidationError
from utils.reports import load_report_data

USER_IMPORT_COLUMNS = ["name", "email", "password"]
REPORT_COLUMNS = [
    "date", "sessionType", "batch", "userId", "userName",
    "email", "division", "status", "notes", "verifiedAt",
]


def read_table(file):
    """Load an uploaded CSV/XLSX file into a DataFrame of strings."""
    filename = (file.filename or "").lower()
    ext = filename.rsplit('.', 1)[1] if '.' in filename else ''
    try:
        if ext == 'csv':
            df = pd.read_csv(file, dtype=str)
        elif ext == 'xlsx':
            df = pd.read_excel(file, dtype=str)
        else:
            raise ValidationError("Unsupported file format. Use CSV or XLSX.")
    except (ValueError, pd.errors.ParserError) as e:
        raise ValidationError(f"Failed to read file: {e}")

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in USER_IMPORT_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    return df.fillna("")


def import_users(df):
    """
    Create one user per row. Rows that cannot be created are returned as
    ``skipped`` with a reason instead of aborting the import.
    """
    batches = {(b.name, b.year): b for b in Batch.query.all()}
    divisions = {d.name: d for d in Division.query.all()}
    seen_emails = {email for (email,) in db.session.query(User.email).all()}

    created, skipped = [], []
    for idx, row in df.iterrows():
        line = idx + 2  # header is line 1
        name = row.get("name", "").strip()
        email = row.get("email", "").strip().lower()
        password = row.get("password", "")
        role_name = row.get("role", "").strip().lower() or Role.santri.value

        if not name or not email or not password:
            skipped.append({"row": line, "reason": "name, email and password are required"})
            continue
        if len(password) < 6:
            skipped.append({"row": line, "reason": "password must be at least 6 characters"})
            continue
        if email in seen_emails:
            skipped.append({"row": line, "reason": f"email {email} already registered"})
            continue
        try:
            role = Role(role_name)
        except ValueError:
            skipped.append({"row": line, "reason": f"unknown role {role_name}"})
            continue

        batch = None
        batch_name = row.get("batch", "").strip()
        if batch_name:
            try:
                batch = batches.get((batch_name, int(row.get("year", ""))))
            except ValueError:
                batch = None
            if batch is None:
                skipped.append({"row": line, "reason": f"batch {batch_name} not found"})
                continue

        division = None
        division_name = row.get("division", "").strip()
        if division_name:
            division = divisions.get(division_name)
            if division is None:
                skipped.append({"row": line, "reason": f"division {division_name} not found"})
                continue

        user = User(name=name, email=email, role=role, batch=batch, division=division)
        user.set_password(password)
        db.session.add(user)
        seen_emails.add(email)
        created.append(user)

    db.session.commit()
    return created, skipped


def attendance_report_csv(**filters):
    sessions, users, records = load_report_data(**filters)
    session_map = {s.id: s for s in sessions}
    user_map = {u.id: u for u in users}

    rows = []
    for record in records:
        session = session_map[record.session_id]
        user = user_map[record.user_id]
        rows.append({
            "date": session.date.isoformat(),
            "sessionType": session.session_type.name if session.session_type else None,
            "batch": session.batch.name if session.batch else None,
            "userId": user.id,
            "userName": user.name,
            "email": user.email,
            "division": user.division.name if user.division else None,
            "status": record.status.value,
            "notes": record.notes,
            "verifiedAt": record.verified_at.isoformat() if record.verified_at else None,
        })

    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    if not df.empty:
        df = df.sort_values(["date", "sessionType", "userName"], ascending=[False, True, True])

    buffer = BytesIO()
    buffer.write(df.to_csv(index=False).encode("utf-8"))
    buffer.seek(0)
    return buffer
