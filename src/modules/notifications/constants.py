"""Notification limits and the correlation ids a notification may carry."""

TITLE_MAX_LENGTH = 200
BODY_MAX_LENGTH = 500
LINK_MAX_LENGTH = 500

# Keys accepted in Notification.metadata
METADATA_RESOURCE_ID = "resourceId"
METADATA_PAYMENT_ID = "paymentId"
METADATA_CHAT_ID = "chatId"
METADATA_KEYS = frozenset({METADATA_RESOURCE_ID, METADATA_PAYMENT_ID, METADATA_CHAT_ID})

# Deep links
LINK_CHAT = "/chat/{chat_id}"
LINK_RESOURCE = "/resource/{resource_id}"
