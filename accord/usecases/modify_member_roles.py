from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from accord.entities.member import (
    BaseRole,
    MemberNotFoundException,
    MemberRoleLimitExceededException,
)
from accord.entities.role import RoleNotFoundException
from accord.exc import StoreError
from accord.usecases.authorization import Authorization, can_manage_roles

if TYPE_CHECKING:
    from accord.cascade import CascadeController
    from accord.entities.member import Member
    from accord.usecases.interfaces import MemberInterface, PermissionInterface, RoleInterface
    from typing import Iterable, List


class ModifyMemberRolesUI(metaclass=ABCMeta):
    """Abstract base class for UI for ModifyMemberRoles."""

    @abstractmethod
    def modified_member_roles(self, server_id, member):
        # type: (str, Member) -> None
        pass

    @abstractmethod
    def modified_member_roles_with_warnings(self, server_id, member, failed_uids):
        # type: (str, Member, List[str]) -> None
        pass

    @abstractmethod
    def modify_member_roles_failed_limit_exceeded(self, server_id, uid, limit):
        # type: (str, str, int) -> None
        pass

    @abstractmethod
    def modify_member_roles_failed_member_not_found(self, server_id, uid):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def modify_member_roles_failed_permission_denied(self, server_id, uid):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def modify_member_roles_failed_role_not_found(self, server_id, uid, role_id):
        # type: (str, str, str) -> None
        pass

    @abstractmethod
    def modify_member_roles_failed_store_error(self, server_id, uid, message):
        # type: (str, str, str) -> None
        pass


class ModifyMemberRoles:
    """Change which roles a member holds, or their base role.

    Anyone who can manage roles may assign and remove ordinary roles.  Only the server owner may
    assign the owner role or promote and demote admins, and nobody can change the owner's base
    role through this use case.
    """

    def __init__(
        self,
        actor,  # type: str
        ui,  # type: ModifyMemberRolesUI
        member_service,  # type: MemberInterface
        role_service,  # type: RoleInterface
        permission_service,  # type: PermissionInterface
        cascade,  # type: CascadeController
    ):
        # type: (...) -> None
        self.actor = actor
        self.ui = ui
        self.member_service = member_service
        self.role_service = role_service
        self.permission_service = permission_service
        self.cascade = cascade

    def _actor_is_owner(self, server_id):
        # type: (str) -> bool
        try:
            return self.permission_service.effective_permissions_for(server_id, self.actor).is_owner
        except MemberNotFoundException:
            return False

    def add_roles(self, server_id, uid, role_ids):
        # type: (str, str, Iterable[str]) -> None
        role_ids = list(role_ids)
        if not can_manage_roles(self.permission_service, server_id, self.actor):
            self.ui.modify_member_roles_failed_permission_denied(server_id, uid)
            return

        for role_id in role_ids:
            try:
                role = self.role_service.get_role(server_id, role_id)
            except RoleNotFoundException:
                self.ui.modify_member_roles_failed_role_not_found(server_id, uid, role_id)
                return
            if role.is_owner_role and not self._actor_is_owner(server_id):
                self.ui.modify_member_roles_failed_permission_denied(server_id, uid)
                return

        authorization = Authorization(self.actor)
        try:
            member = self.member_service.add_roles(server_id, uid, role_ids, authorization)
        except MemberNotFoundException:
            self.ui.modify_member_roles_failed_member_not_found(server_id, uid)
            return
        except RoleNotFoundException as e:
            self.ui.modify_member_roles_failed_role_not_found(server_id, uid, e.role_id)
            return
        except MemberRoleLimitExceededException as e:
            self.ui.modify_member_roles_failed_limit_exceeded(server_id, uid, e.limit)
            return
        except StoreError as e:
            self.ui.modify_member_roles_failed_store_error(server_id, uid, str(e))
            return
        self._finish(server_id, member)

    def remove_roles(self, server_id, uid, role_ids):
        # type: (str, str, Iterable[str]) -> None
        if not can_manage_roles(self.permission_service, server_id, self.actor):
            self.ui.modify_member_roles_failed_permission_denied(server_id, uid)
            return

        authorization = Authorization(self.actor)
        try:
            member = self.member_service.remove_roles(server_id, uid, role_ids, authorization)
        except MemberNotFoundException:
            self.ui.modify_member_roles_failed_member_not_found(server_id, uid)
            return
        except StoreError as e:
            self.ui.modify_member_roles_failed_store_error(server_id, uid, str(e))
            return
        self._finish(server_id, member)

    def set_base_role(self, server_id, uid, base_role):
        # type: (str, str, BaseRole) -> None
        try:
            member = self.member_service.get_member(server_id, uid)
        except MemberNotFoundException:
            self.ui.modify_member_roles_failed_member_not_found(server_id, uid)
            return

        if base_role == BaseRole.OWNER or member.is_owner:
            self.ui.modify_member_roles_failed_permission_denied(server_id, uid)
            return
        if (base_role == BaseRole.ADMIN or member.is_admin) and not self._actor_is_owner(server_id):
            self.ui.modify_member_roles_failed_permission_denied(server_id, uid)
            return
        if not can_manage_roles(self.permission_service, server_id, self.actor):
            self.ui.modify_member_roles_failed_permission_denied(server_id, uid)
            return

        authorization = Authorization(self.actor)
        try:
            member = self.member_service.set_base_role(server_id, uid, base_role, authorization)
        except StoreError as e:
            self.ui.modify_member_roles_failed_store_error(server_id, uid, str(e))
            return
        self._finish(server_id, member)

    def _finish(self, server_id, member):
        # type: (str, Member) -> None
        self.cascade.member_changed(server_id, member.uid)
        result = self.cascade.drain()
        if result.failures:
            self.ui.modified_member_roles_with_warnings(server_id, member, result.failed_uids)
        else:
            self.ui.modified_member_roles(server_id, member)
