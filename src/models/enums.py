import enum


class UserRole(str, enum.Enum):
    STUDENT = "student"
    ADMIN = "admin"


class NotificationKind(str, enum.Enum):
    RESOURCE_UPLOAD = "resource_upload"
    NEW_FEEDBACK = "new_feedback"
    PAYMENT_SUCCESS = "payment_success"
    CHAT_MESSAGE = "chat_message"
    SYSTEM = "system"
    ADMIN = "admin"
