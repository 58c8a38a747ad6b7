# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.chat_message import ChatMessage
from src.models.conversation import Conversation, participant_key
from src.models.enums import NotificationKind, UserRole
from src.models.notification import Notification
from src.models.user import User

__all__ = [
    "ChatMessage",
    "Conversation",
    "Notification",
    "NotificationKind",
    "User",
    "UserRole",
    "participant_key",
]
