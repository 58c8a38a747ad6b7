"""Realtime event names, client frame types and close codes."""

# Server → client events
EVENT_CONNECTED = "connected"
EVENT_NEW_MESSAGE = "new_message"
EVENT_NEW_NOTIFICATION = "new_notification"
EVENT_ADMIN_NOTIFICATION = "admin_notification"
EVENT_SYSTEM_NOTIFICATION = "system_notification"
EVENT_USER_TYPING = "user_typing"
EVENT_USER_STOP_TYPING = "user_stop_typing"
EVENT_JOINED = "joined"
EVENT_ERROR = "error"
EVENT_PONG = "pong"

# Client → server frames
FRAME_AUTH = "auth"
FRAME_JOIN_CHAT = "join_chat"
FRAME_JOIN_ADMIN = "join_admin"
FRAME_TYPING = "typing"
FRAME_STOP_TYPING = "stop_typing"
FRAME_PING = "ping"

# Room naming
PERSONAL_ROOM_PREFIX = "user:"
CONVERSATION_ROOM_PREFIX = "chat:"
ROLE_ROOM_SUFFIX = "_room"
ADMIN_ROLE = "admin"

# Application close code for a refused handshake (4000-4999 are app-defined)
WS_CLOSE_UNAUTHENTICATED = 4401
