from __future__ import annotations

from enum import StrEnum


class ConversationKind(StrEnum):
    DIRECT = "direct"
    GROUP = "group"


class MemberRole(StrEnum):
    MEMBER = "member"
    OWNER = "owner"


class MessageStatus(StrEnum):
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


class RealtimeEvent(StrEnum):
    MESSAGE_INSERT = "message_insert"
    NOTIFICATION_INSERT = "notification_insert"


class PresenceEvent(StrEnum):
    SYNC = "sync"
    JOIN = "join"
    LEAVE = "leave"


class NotificationType(StrEnum):
    MESSAGE = "message"
    REACTION = "reaction"
