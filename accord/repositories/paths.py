"""Document paths for every collection the engine reads or writes."""

from accord.constants import (
    CHANNELS_COLLECTION,
    MEMBERS_COLLECTION,
    PRESENCE_COLLECTION,
    PRESENCE_DOCUMENT,
    PROFILES_COLLECTION,
    ROLES_COLLECTION,
    SERVERS_COLLECTION,
)
from accord.entities.document import join_path


def server_path(server_id):
    # type: (str) -> str
    return join_path(SERVERS_COLLECTION, server_id)


def roles_path(server_id):
    # type: (str) -> str
    return join_path(server_path(server_id), ROLES_COLLECTION)


def role_path(server_id, role_id):
    # type: (str, str) -> str
    return join_path(roles_path(server_id), role_id)


def members_path(server_id):
    # type: (str) -> str
    return join_path(server_path(server_id), MEMBERS_COLLECTION)


def member_path(server_id, uid):
    # type: (str, str) -> str
    return join_path(members_path(server_id), uid)


def channels_path(server_id):
    # type: (str) -> str
    return join_path(server_path(server_id), CHANNELS_COLLECTION)


def channel_path(server_id, channel_id):
    # type: (str, str) -> str
    return join_path(channels_path(server_id), channel_id)


def profile_path(uid):
    # type: (str) -> str
    return join_path(PROFILES_COLLECTION, uid)


def presence_path(uid):
    # type: (str) -> str
    return join_path(profile_path(uid), PRESENCE_COLLECTION, PRESENCE_DOCUMENT)
