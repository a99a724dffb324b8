import logging
import os
from datetime import datetime
from flask import current_app, has_app_context

DEFAULT_AUDIT_LOG_FILE = os.path.join("logs", "audit.log")

def log_event(event_type, user_id=None, ip=None, description=None, level="INFO"):
    """
    Appends a security or audit-related event to the audit log file and
    mirrors it to the application logger.

    Parameters:
        event_type (str): The type of the event (e.g., LOGIN_SUCCESS).
        user_id (int|None): The acting user ID, if available.
        ip (str|None): IP address, if available.
        description (str|None): Additional context.
        level (str): Log level (e.g., INFO, WARNING, ERROR).
    """
    log_file = DEFAULT_AUDIT_LOG_FILE
    if has_app_context():
        log_file = current_app.config.get("AUDIT_LOG_FILE", DEFAULT_AUDIT_LOG_FILE)

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.utcnow().strftime('%Y-%m-%d %H:%M:%S')
    log_entry = (
        f"[{timestamp}] [{level.upper()}] EVENT: {event_type} | "
        f"USER: {user_id or 'N/A'} | IP: {ip or 'N/A'} | DESC: {description or 'N/A'}\n"
    )

    with open(log_file, "a") as fh:
        fh.write(log_entry)

    if has_app_context():
        current_app.logger.log(logging.getLevelName(level.upper()), log_entry.strip())
