from dataclasses import dataclass
from typing import TYPE_CHECKING

from accord.constants import ADMIN_LIKE_PERMISSIONS

if TYPE_CHECKING:
    from accord.usecases.interfaces import PermissionInterface


@dataclass(frozen=True)
class Authorization:
    """Indicates that an action has been authorized.

    Every write method on a role, member, or server service takes one of these, so a caller has to
    explicitly construct it after running its permission checks.

    Attributes:
        actor: Identity of the user performing the action
    """

    actor: str


def can_manage_roles(permission_service, server_id, actor):
    # type: (PermissionInterface, str, str) -> bool
    """Whether the actor may create, edit, delete, or assign roles in a server."""
    return any(
        permission_service.member_has_permission(server_id, actor, permission)
        for permission in ADMIN_LIKE_PERMISSIONS
    )
