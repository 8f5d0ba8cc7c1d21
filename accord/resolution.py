"""Pure permission resolution.

Nothing here touches storage.  Callers load the member, the server's roles, and the server itself,
and these functions decide what the member can do.  Stale references (a role id on a member that
no longer names a role, a default role pointer at a deleted role) are skipped rather than treated
as errors, because the deletion cascade is responsible for eventually pruning them and resolution
must keep working in the meantime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from accord.constants import (
    ADMIN_LIKE_PERMISSIONS,
    ADMIN_OVERRIDE_PERMISSION,
    EVERYONE_ROLE_NAME,
    VIEW_CHANNEL,
)
from accord.entities.member import BaseRole
from accord.entities.permission import EffectivePermissions
from accord.entities.role import role_sort_key
from accord.permissions import PermissionSet

if TYPE_CHECKING:
    from accord.entities.channel import Channel
    from accord.entities.member import Member
    from accord.entities.role import Role
    from accord.entities.server import Server
    from typing import Mapping, Optional


def select_default_role(server: Optional[Server], roles: Mapping[str, Role]) -> Optional[Role]:
    """Pick the server's baseline role.

    In order: the explicit default role pointer if it still names a role, the role flagged as the
    everyone role, a role named "everyone" (case-insensitive), and finally None.  Roles are
    scanned in display order so that duplicate flags or names resolve the same way every time.
    """
    if server and server.default_role_id and server.default_role_id in roles:
        return roles[server.default_role_id]

    ordered = sorted(roles.values(), key=role_sort_key)
    for role in ordered:
        if role.is_everyone_role:
            return role
    for role in ordered:
        if role.name.strip().lower() == EVERYONE_ROLE_NAME:
            return role
    return None


def _is_owner(member: Member, roles: Mapping[str, Role]) -> bool:
    if member.base_role == BaseRole.OWNER:
        return True
    return any(roles[r].is_owner_role for r in member.role_ids if r in roles)


def resolve_permission_set(
    member: Member,
    roles: Mapping[str, Role],
    default_role: Optional[Role],
    admin_override: str = ADMIN_OVERRIDE_PERMISSION,
) -> PermissionSet:
    if _is_owner(member, roles):
        return PermissionSet.all()

    permissions = PermissionSet()
    if default_role:
        permissions |= PermissionSet.from_stored(default_role.permissions)

    for role_id in member.role_ids:
        role = roles.get(role_id)
        if role is None:
            continue
        permissions |= PermissionSet.from_stored(role.permissions)

    if member.base_role == BaseRole.ADMIN:
        permissions |= PermissionSet.from_keys([admin_override])

    return permissions


def resolve_effective_permissions(
    member: Member,
    roles: Mapping[str, Role],
    default_role: Optional[Role],
    admin_override: str = ADMIN_OVERRIDE_PERMISSION,
) -> EffectivePermissions:
    """Compute a member's effective capabilities.

    Owners (by base role, or by holding a role flagged as the owner role) get everything and their
    roles are ignored.  Everyone else gets the union of the default role and every assigned role
    that still exists.  Admins additionally get the admin override capability even when no role
    grants it.
    """
    permissions = resolve_permission_set(member, roles, default_role, admin_override)
    return EffectivePermissions.from_set(permissions, is_owner=_is_owner(member, roles))


def resolve_channel_permissions(
    member: Member,
    roles: Mapping[str, Role],
    default_role: Optional[Role],
    channel: Channel,
    admin_override: str = ADMIN_OVERRIDE_PERMISSION,
) -> EffectivePermissions:
    """Apply a channel's permission overrides on top of the member's effective set.

    Role overrides for every role the member holds are merged first (all allows, then all denies),
    then the everyone override, then the member's own override.  Deny beats allow at each step.
    Owners are not affected by channel overrides.
    """
    if _is_owner(member, roles):
        return EffectivePermissions.from_set(PermissionSet.all(), is_owner=True)

    permissions = resolve_permission_set(member, roles, default_role, admin_override)
    overrides = channel.overrides

    allow = PermissionSet()
    deny = PermissionSet()
    matched = False
    for role_id in sorted(member.role_ids):
        override = overrides.roles.get(role_id)
        if override:
            matched = True
            allow |= override.allow
            deny |= override.deny
    if matched:
        permissions = (permissions | allow) - deny

    if overrides.everyone:
        permissions = overrides.everyone.apply(permissions)

    member_override = overrides.members.get(member.uid)
    if member_override:
        permissions = member_override.apply(permissions)

    return EffectivePermissions.from_set(permissions)


def can_view_channel(
    member: Member,
    roles: Mapping[str, Role],
    default_role: Optional[Role],
    channel: Channel,
    admin_override: str = ADMIN_OVERRIDE_PERMISSION,
) -> bool:
    """Whether a member may see a channel at all.

    Owners and admin-like members see every channel.  Private channels also require that one of
    the member's roles (including the default role) is on the channel's allow-list.
    """
    base = resolve_permission_set(member, roles, default_role, admin_override)
    if base == PermissionSet.all() or any(key in base for key in ADMIN_LIKE_PERMISSIONS):
        return True

    effective = resolve_channel_permissions(member, roles, default_role, channel, admin_override)
    if not effective.has(VIEW_CHANNEL):
        return False
    if not channel.is_private:
        return True

    held = set(member.role_ids)
    if default_role:
        held.add(default_role.id)
    return bool(held & channel.allowed_role_ids)
