# THE ORDER IS SIGNIFICANT.  The index of a key in this tuple is its bit position in every
# persisted permissionBits value.  Any new capability MUST be appended to the end, never inserted
# or reordered, and added to the relevant tests.
PERMISSION_KEYS = (
    # General server
    "VIEW_SERVER",
    "MANAGE_SERVER",
    "MANAGE_CHANNELS",
    "MANAGE_ROLES",
    "MANAGE_WEBHOOKS",
    "VIEW_AUDIT_LOG",
    "MANAGE_EMOJIS_STICKERS",
    "MANAGE_EVENTS",
    # Member management
    "KICK_MEMBERS",
    "BAN_MEMBERS",
    "TIMEOUT_MEMBERS",
    # Channel + messaging
    "VIEW_CHANNEL",
    "SEND_MESSAGES",
    "SEND_MESSAGES_IN_THREADS",
    "CREATE_PUBLIC_THREADS",
    "CREATE_PRIVATE_THREADS",
    "MANAGE_THREADS",
    "MANAGE_MESSAGES",
    "READ_MESSAGE_HISTORY",
    "ADD_REACTIONS",
    "MANAGE_REACTIONS",
    "EMBED_LINKS",
    "ATTACH_FILES",
    "USE_EXTERNAL_EMOJIS",
    "MENTION_EVERYONE",
    # Voice + stage
    "CONNECT_VOICE",
    "SPEAK_VOICE",
    "STREAM_VOICE",
    "MUTE_MEMBERS",
    "DEAFEN_MEMBERS",
    "MOVE_MEMBERS",
    "PRIORITY_SPEAKER",
    # Visibility
    "VIEW_MEMBER_LIST",
    "VIEW_SERVER_HOME",
)

# Global permission names to prevent stringly typed things.
VIEW_SERVER = "VIEW_SERVER"
MANAGE_SERVER = "MANAGE_SERVER"
MANAGE_ROLES = "MANAGE_ROLES"
VIEW_CHANNEL = "VIEW_CHANNEL"
SEND_MESSAGES = "SEND_MESSAGES"
READ_MESSAGE_HISTORY = "READ_MESSAGE_HISTORY"
ADD_REACTIONS = "ADD_REACTIONS"
CONNECT_VOICE = "CONNECT_VOICE"

# Granted to a member whose base role is admin even when no role grants it.
ADMIN_OVERRIDE_PERMISSION = MANAGE_SERVER

# Holding any of these makes a member see every channel regardless of channel allow-lists.
ADMIN_LIKE_PERMISSIONS = (MANAGE_SERVER, MANAGE_ROLES)

# Name matched case-insensitively when no role is flagged as the everyone role.
EVERYONE_ROLE_NAME = "everyone"

MAX_ROLES_PER_SERVER = 250
MAX_ROLES_PER_MEMBER = 25

# Largest number of documents the backend accepts in one atomic batch write.
BATCH_WRITE_LIMIT = 500

# Presence time windows, in seconds.
PRESENCE_ONLINE_WINDOW = 10 * 60
PRESENCE_IDLE_WINDOW = 60 * 60

# Collection names in the document store.
SERVERS_COLLECTION = "servers"
ROLES_COLLECTION = "roles"
MEMBERS_COLLECTION = "members"
CHANNELS_COLLECTION = "channels"
PROFILES_COLLECTION = "profiles"
PRESENCE_COLLECTION = "presence"
PRESENCE_DOCUMENT = "status"
