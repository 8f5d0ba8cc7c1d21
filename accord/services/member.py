import logging
from typing import TYPE_CHECKING

from accord.entities.member import (
    BaseRole,
    MemberNotFoundException,
    MemberRoleLimitExceededException,
)
from accord.entities.role import RoleNotFoundException
from accord.entities.server import ServerNotFoundException
from accord.usecases.interfaces import MemberInterface

if TYPE_CHECKING:
    from accord.entities.member import Member
    from accord.repositories.interfaces import (
        MemberRepository,
        RoleRepository,
        ServerRepository,
    )
    from accord.settings import Settings
    from accord.usecases.authorization import Authorization
    from typing import Iterable


class MemberService(MemberInterface):
    """High-level logic to manipulate server members and their role assignments."""

    def __init__(self, settings, server_repository, role_repository, member_repository):
        # type: (Settings, ServerRepository, RoleRepository, MemberRepository) -> None
        self._logger = logging.getLogger(__name__)
        self.settings = settings
        self.server_repository = server_repository
        self.role_repository = role_repository
        self.member_repository = member_repository

    def get_member(self, server_id, uid):
        # type: (str, str) -> Member
        member = self.member_repository.get_member(server_id, uid)
        if not member:
            raise MemberNotFoundException(server_id, uid)
        return member

    def add_member(self, server_id, uid, authorization):
        # type: (str, str, Authorization) -> Member
        """Add a member holding no explicit roles.  The default role applies implicitly."""
        if not self.server_repository.get_server(server_id):
            raise ServerNotFoundException(server_id)
        if not self.member_repository.get_member(server_id, uid):
            update = {"role": BaseRole.MEMBER.value, "roleIds": []}
            self.member_repository.update_member(server_id, uid, update)
            self._logger.info("%s added member %s to %s", authorization.actor, uid, server_id)
        return self.get_member(server_id, uid)

    def add_roles(self, server_id, uid, role_ids, authorization):
        # type: (str, str, Iterable[str], Authorization) -> Member
        member = self.get_member(server_id, uid)
        roles = self.role_repository.list_roles(server_id)
        requested = set(role_ids)
        for role_id in sorted(requested):
            if role_id not in roles:
                raise RoleNotFoundException(server_id, role_id)

        new_role_ids = member.role_ids | requested
        if len(new_role_ids) > self.settings.max_roles_per_member:
            raise MemberRoleLimitExceededException(uid, self.settings.max_roles_per_member)
        if new_role_ids != member.role_ids:
            self.member_repository.update_member(server_id, uid, {"roleIds": sorted(new_role_ids)})
            self._logger.info(
                "%s gave %s roles %s in %s",
                authorization.actor,
                uid,
                ", ".join(sorted(requested - member.role_ids)),
                server_id,
            )
        return self.get_member(server_id, uid)

    def remove_roles(self, server_id, uid, role_ids, authorization):
        # type: (str, str, Iterable[str], Authorization) -> Member
        """Remove roles from a member.  Ids the member does not hold are ignored."""
        member = self.get_member(server_id, uid)
        new_role_ids = member.role_ids - set(role_ids)
        if new_role_ids != member.role_ids:
            self.member_repository.update_member(server_id, uid, {"roleIds": sorted(new_role_ids)})
            self._logger.info(
                "%s removed roles %s from %s in %s",
                authorization.actor,
                ", ".join(sorted(member.role_ids - new_role_ids)),
                uid,
                server_id,
            )
        return self.get_member(server_id, uid)

    def set_base_role(self, server_id, uid, base_role, authorization):
        # type: (str, str, BaseRole, Authorization) -> Member
        member = self.get_member(server_id, uid)
        if member.base_role != base_role:
            self.member_repository.update_member(server_id, uid, {"role": base_role.value})
            self._logger.info(
                "%s changed base role of %s in %s to %s",
                authorization.actor,
                uid,
                server_id,
                base_role.value,
            )
        return self.get_member(server_id, uid)
