from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from accord.entities.role import OwnerRoleProtectedException, RoleNotFoundException
from accord.exc import StoreError
from accord.usecases.authorization import Authorization, can_manage_roles

if TYPE_CHECKING:
    from accord.cascade import CascadeController
    from accord.entities.role import Role
    from accord.usecases.interfaces import PermissionInterface, RoleInterface
    from typing import Any, List, Mapping


class UpdateRolePermissionsUI(metaclass=ABCMeta):
    """Abstract base class for UI for UpdateRolePermissions."""

    @abstractmethod
    def updated_role_permissions(self, server_id, role):
        # type: (str, Role) -> None
        pass

    @abstractmethod
    def updated_role_permissions_with_warnings(self, server_id, role, failed_uids):
        # type: (str, Role, List[str]) -> None
        pass

    @abstractmethod
    def update_role_permissions_failed_not_found(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def update_role_permissions_failed_owner_role(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def update_role_permissions_failed_permission_denied(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def update_role_permissions_failed_store_error(self, server_id, role_id, message):
        # type: (str, str, str) -> None
        pass


class UpdateRolePermissions:
    """Change some of a role's permissions and recompute every member it affects."""

    def __init__(
        self,
        actor,  # type: str
        ui,  # type: UpdateRolePermissionsUI
        role_service,  # type: RoleInterface
        permission_service,  # type: PermissionInterface
        cascade,  # type: CascadeController
    ):
        # type: (...) -> None
        self.actor = actor
        self.ui = ui
        self.role_service = role_service
        self.permission_service = permission_service
        self.cascade = cascade

    def update_role_permissions(self, server_id, role_id, changes):
        # type: (str, str, Mapping[str, Any]) -> None
        """Apply a partial update, such as {"SEND_MESSAGES": False}.

        Legacy spellings of the permission names are accepted.  The role change is kept even if
        some member caches cannot be rewritten; those members are reported as warnings.
        """
        if not can_manage_roles(self.permission_service, server_id, self.actor):
            self.ui.update_role_permissions_failed_permission_denied(server_id, role_id)
            return

        authorization = Authorization(self.actor)
        try:
            role = self.role_service.update_role_permissions(
                server_id, role_id, changes, authorization
            )
        except RoleNotFoundException:
            self.ui.update_role_permissions_failed_not_found(server_id, role_id)
            return
        except OwnerRoleProtectedException:
            self.ui.update_role_permissions_failed_owner_role(server_id, role_id)
            return
        except StoreError as e:
            self.ui.update_role_permissions_failed_store_error(server_id, role_id, str(e))
            return

        self.cascade.role_permissions_changed(server_id, role_id)
        result = self.cascade.drain()
        if result.failures:
            self.ui.updated_role_permissions_with_warnings(server_id, role, result.failed_uids)
        else:
            self.ui.updated_role_permissions(server_id, role)
