from app.models.user import User
from app.models.category import Category
from app.models.complaint import Complaint, Comment, Attachment
from app.models.assignment_rule import AssignmentRule
from app.models.sla_policy import SlaPolicy
from app.models.notification import Notification
from app.models.email_preference import EmailPreference
from app.models.activity_log import ActivityLog

__all__ = [
    "User",
    "Category",
    "Complaint", "Comment", "Attachment",
    "AssignmentRule",
    "SlaPolicy",
    "Notification",
    "EmailPreference",
    "ActivityLog",
]
