from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MENTOR = "mentor"
    MENTEE = "mentee"
    DEPT_LEAD = "dept_lead"


class AssignmentRole(str, Enum):
    PRIMARY = "primary"
    CO_MENTOR = "co_mentor"


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AssignmentMode(str, Enum):
    """Who owns assignment data: this app, or an upstream system it mirrors read-only."""

    APP = "app"
    UPSTREAM = "upstream"


class CycleStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    LOCKED = "locked"
    ARCHIVED = "archived"


class SessionType(str, Enum):
    ONE_ON_ONE = "one_on_one"
    GROUP = "group"


class SessionPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class SessionStatus(str, Enum):
    PENDING = "pending"
    # Completion requested by a mentor; waiting on their feedback to commit.
    PENDING_FEEDBACK = "pending_feedback"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipationStatus(str, Enum):
    INVITED = "invited"
    CONFIRMED = "confirmed"
    ATTENDED = "attended"
    MISSED = "missed"


class GoalStatus(str, Enum):
    PROPOSED = "proposed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class NotificationType(str, Enum):
    SESSION_INVITATION = "session_invitation"
    SESSION_CONFIRMATION = "session_confirmation"
    SESSION_UPDATE = "session_update"
    SESSION_CANCELLATION = "session_cancellation"
    GENERAL = "general"


class RecipientType(str, Enum):
    STUDENT = "student"
    MENTOR = "mentor"
    ADMIN = "admin"


class HistoryAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ENDED = "ended"
    LOCKED = "locked"
