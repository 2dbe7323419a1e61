from app.core.models.assignment import Assignment
from app.core.models.assignment_cycle import AssignmentCycle
from app.core.models.assignment_history import AssignmentHistory
from app.core.models.audit_log import AuditLog
from app.core.models.counseling_session import CounselingSession, SessionParticipant
from app.core.models.directory import DirectoryStaff, DirectoryStudent
from app.core.models.feedback import MentorFeedback, SessionFeedback
from app.core.models.goal import Goal, GoalVersion
from app.core.models.meeting_log import MeetingLog
from app.core.models.notification import Notification
from app.core.models.outbox_event import OutboxEvent
from app.core.models.system_setting import SystemSetting

__all__ = [
    "Assignment",
    "AssignmentCycle",
    "AssignmentHistory",
    "AuditLog",
    "CounselingSession",
    "SessionParticipant",
    "DirectoryStaff",
    "DirectoryStudent",
    "MentorFeedback",
    "SessionFeedback",
    "Goal",
    "GoalVersion",
    "MeetingLog",
    "Notification",
    "OutboxEvent",
    "SystemSetting",
]
