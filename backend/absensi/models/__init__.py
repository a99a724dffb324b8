from .base import Role, SessionStatus, AttendanceStatus, SESSION_TRANSITIONS
from .User import User, TokenBlocklist
from .Batch import Batch
from .Division import Division
from .SessionType import SessionType
from .Session import Session
from .Attendance import Attendance
from .AuditLog import AuditLog
