"""Import all models so Alembic can discover them via Base.metadata."""
from echoworld_chat.infrastructure.db.models.conversation import ConversationModel
from echoworld_chat.infrastructure.db.models.member import ConversationMemberModel
from echoworld_chat.infrastructure.db.models.message import MessageModel
from echoworld_chat.infrastructure.db.models.notification import NotificationModel
from echoworld_chat.infrastructure.db.models.profile import ProfileModel
from echoworld_chat.infrastructure.db.models.reaction import MessageReactionModel

__all__ = [
    "ConversationMemberModel",
    "ConversationModel",
    "MessageModel",
    "MessageReactionModel",
    "NotificationModel",
    "ProfileModel",
]
