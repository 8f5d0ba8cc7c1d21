import logging
from typing import TYPE_CHECKING

from accord.entities.document import split_path
from accord.entities.role import (
    OwnerRoleProtectedException,
    RoleLimitExceededException,
    RoleNotFoundException,
    role_sort_key,
)
from accord.entities.server import ServerNotFoundException
from accord.permissions import encode_permissions, merge_permission_changes
from accord.resolution import select_default_role
from accord.usecases.interfaces import RoleInterface

if TYPE_CHECKING:
    from accord.entities.role import Role
    from accord.repositories.interfaces import (
        BatchWriteRepository,
        ChannelRepository,
        DocumentWrite,
        MemberRepository,
        RoleRepository,
        ServerRepository,
    )
    from accord.settings import Settings
    from accord.usecases.authorization import Authorization
    from typing import Any, List, Mapping, Optional, Set


class RoleService(RoleInterface):
    """High-level logic to manipulate roles.

    Recomputing the cached permissions of affected members is not done here.  Callers hand the
    affected members returned by these methods to the cascade controller.
    """

    def __init__(
        self,
        settings,  # type: Settings
        server_repository,  # type: ServerRepository
        role_repository,  # type: RoleRepository
        member_repository,  # type: MemberRepository
        channel_repository,  # type: ChannelRepository
        batch_write_repository,  # type: BatchWriteRepository
    ):
        # type: (...) -> None
        self._logger = logging.getLogger(__name__)
        self.settings = settings
        self.server_repository = server_repository
        self.role_repository = role_repository
        self.member_repository = member_repository
        self.channel_repository = channel_repository
        self.batch_write_repository = batch_write_repository

    def get_role(self, server_id, role_id):
        # type: (str, str) -> Role
        role = self.role_repository.get_role(server_id, role_id)
        if not role:
            raise RoleNotFoundException(server_id, role_id)
        return role

    def list_roles(self, server_id):
        # type: (str) -> List[Role]
        """All roles of a server in display order, highest position first."""
        return sorted(self.role_repository.list_roles(server_id).values(), key=role_sort_key)

    def create_role(self, server_id, name, authorization, color=None):
        # type: (str, str, Authorization, Optional[str]) -> Role
        """Create a role with no permissions, placed above every existing role."""
        if not self.server_repository.get_server(server_id):
            raise ServerNotFoundException(server_id)
        roles = self.role_repository.list_roles(server_id)
        if len(roles) >= self.settings.max_roles_per_server:
            raise RoleLimitExceededException(server_id, self.settings.max_roles_per_server)

        position = max((role.position for role in roles.values()), default=-1) + 1
        data = {
            "name": name.strip() or "Role",
            "color": color,
            "position": position,
            "permissions": {},
            "permissionBits": 0,
            "isOwnerRole": False,
            "isEveryoneRole": False,
            "mentionable": False,
            "allowMassMentions": False,
            "showInMemberList": True,
        }
        role_id = self.role_repository.create_role(server_id, data)
        self._logger.info(
            "%s created role %s (%s) in %s", authorization.actor, role_id, name, server_id
        )
        return self.get_role(server_id, role_id)

    def update_role_permissions(self, server_id, role_id, changes, authorization):
        # type: (str, str, Mapping[str, Any], Authorization) -> Role
        """Apply a partial permission update to a role.

        The stored map is normalized before the changes are applied, so the role is rewritten in
        canonical form and its permissionBits cache is refreshed in the same write.
        """
        role = self.get_role(server_id, role_id)
        if role.is_owner_role:
            raise OwnerRoleProtectedException(role_id)

        permissions = merge_permission_changes(role.permissions, changes)
        update = {"permissions": permissions, "permissionBits": encode_permissions(permissions)}
        self.role_repository.update_role(server_id, role_id, update)
        self._logger.info(
            "%s changed permissions of role %s in %s: %s",
            authorization.actor,
            role_id,
            server_id,
            ", ".join(f"{k}={bool(v)}" for k, v in sorted(changes.items())),
        )
        return self.get_role(server_id, role_id)

    def delete_role(self, server_id, role_id, authorization):
        # type: (str, str, Authorization) -> Set[str]
        """Delete a role after removing every reference to it.

        Member roleIds and channel allowedRoleIds are pruned first, then the role document is
        deleted.  If pruning fails, the StoreError propagates and the role is left in place so the
        deletion can be retried.

        Returns:
            The members whose permissions may have changed: the former holders, plus every member
            if the role was the server's default role.
        """
        role = self.get_role(server_id, role_id)
        if role.is_owner_role:
            raise OwnerRoleProtectedException(role_id)

        server = self.server_repository.get_server(server_id)
        default_role = select_default_role(server, self.role_repository.list_roles(server_id))
        was_default = bool(default_role and default_role.id == role_id)

        affected = self.remove_role_references(server_id, role_id)
        if was_default:
            affected |= set(self.member_repository.list_members(server_id))
        if server and server.default_role_id == role_id:
            self.server_repository.update_server(server_id, {"defaultRoleId": None})

        self.role_repository.delete_role(server_id, role_id)
        self._logger.info(
            "%s deleted role %s in %s, %d members affected",
            authorization.actor,
            role_id,
            server_id,
            len(affected),
        )
        return affected

    def remove_role_references(self, server_id, role_id):
        # type: (str, str) -> Set[str]
        """Drop a role id from every member and channel that references it.

        Safe to repeat.  Returns the members that held the role.
        """
        member_writes = self.member_repository.role_reference_removals(server_id, role_id)
        channel_writes = self.channel_repository.role_reference_removals(server_id, role_id)
        writes = member_writes + channel_writes  # type: List[DocumentWrite]
        for batch in self.batch_write_repository.batches(writes):
            self.batch_write_repository.commit(batch)

        holders = {split_path(path)[1] for path, _ in member_writes}
        if writes:
            self._logger.info(
                "Removed role %s from %d members and %d channels in %s",
                role_id,
                len(member_writes),
                len(channel_writes),
                server_id,
            )
        return holders

    def set_default_role(self, server_id, role_id, authorization):
        # type: (str, Optional[str], Authorization) -> None
        """Point the server at a new default role, or clear the pointer with None."""
        if not self.server_repository.get_server(server_id):
            raise ServerNotFoundException(server_id)
        if role_id is not None:
            self.get_role(server_id, role_id)
        self.server_repository.update_server(server_id, {"defaultRoleId": role_id})
        self._logger.info(
            "%s set default role of %s to %s", authorization.actor, server_id, role_id
        )
