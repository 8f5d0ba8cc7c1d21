from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from accord.entities.role import OwnerRoleProtectedException, RoleNotFoundException
from accord.exc import StoreError
from accord.usecases.authorization import Authorization, can_manage_roles

if TYPE_CHECKING:
    from accord.cascade import CascadeController
    from accord.usecases.interfaces import PermissionInterface, RoleInterface
    from typing import List


class DeleteRoleUI(metaclass=ABCMeta):
    """Abstract base class for UI for DeleteRole."""

    @abstractmethod
    def deleted_role(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def deleted_role_with_warnings(self, server_id, role_id, failed_uids):
        # type: (str, str, List[str]) -> None
        pass

    @abstractmethod
    def delete_role_failed_not_found(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def delete_role_failed_owner_role(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def delete_role_failed_permission_denied(self, server_id, role_id):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def delete_role_failed_store_error(self, server_id, role_id, message):
        # type: (str, str, str) -> None
        pass


class DeleteRole:
    """Delete a role, prune every reference to it, and recompute its former holders."""

    def __init__(self, actor, ui, role_service, permission_service, cascade):
        # type: (str, DeleteRoleUI, RoleInterface, PermissionInterface, CascadeController) -> None
        self.actor = actor
        self.ui = ui
        self.role_service = role_service
        self.permission_service = permission_service
        self.cascade = cascade

    def delete_role(self, server_id, role_id):
        # type: (str, str) -> None
        if not can_manage_roles(self.permission_service, server_id, self.actor):
            self.ui.delete_role_failed_permission_denied(server_id, role_id)
            return

        authorization = Authorization(self.actor)
        try:
            affected = self.role_service.delete_role(server_id, role_id, authorization)
        except RoleNotFoundException:
            self.ui.delete_role_failed_not_found(server_id, role_id)
            return
        except OwnerRoleProtectedException:
            self.ui.delete_role_failed_owner_role(server_id, role_id)
            return
        except StoreError as e:
            self.ui.delete_role_failed_store_error(server_id, role_id, str(e))
            return

        self.cascade.role_deleted(server_id, role_id, affected)
        result = self.cascade.drain()
        if result.failures:
            self.ui.deleted_role_with_warnings(server_id, role_id, result.failed_uids)
        else:
            self.ui.deleted_role(server_id, role_id)
