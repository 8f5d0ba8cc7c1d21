from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from accord.entities.role import RoleLimitExceededException
from accord.entities.server import ServerNotFoundException
from accord.exc import StoreError
from accord.usecases.authorization import Authorization, can_manage_roles

if TYPE_CHECKING:
    from accord.entities.role import Role
    from accord.usecases.interfaces import PermissionInterface, RoleInterface
    from typing import Optional


class CreateRoleUI(metaclass=ABCMeta):
    """Abstract base class for UI for CreateRole."""

    @abstractmethod
    def created_role(self, server_id, role):
        # type: (str, Role) -> None
        pass

    @abstractmethod
    def create_role_failed_limit_exceeded(self, server_id, name, limit):
        # type: (str, str, int) -> None
        pass

    @abstractmethod
    def create_role_failed_permission_denied(self, server_id, name):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def create_role_failed_server_not_found(self, server_id, name):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def create_role_failed_store_error(self, server_id, name, message):
        # type: (str, str, str) -> None
        pass


class CreateRole:
    """Create a new role with no permissions at the top of the role list.

    No recompute is needed since nobody holds the role yet.
    """

    def __init__(self, actor, ui, role_service, permission_service):
        # type: (str, CreateRoleUI, RoleInterface, PermissionInterface) -> None
        self.actor = actor
        self.ui = ui
        self.role_service = role_service
        self.permission_service = permission_service

    def create_role(self, server_id, name, color=None):
        # type: (str, str, Optional[str]) -> None
        if not can_manage_roles(self.permission_service, server_id, self.actor):
            self.ui.create_role_failed_permission_denied(server_id, name)
            return

        authorization = Authorization(self.actor)
        try:
            role = self.role_service.create_role(server_id, name, authorization, color)
        except ServerNotFoundException:
            self.ui.create_role_failed_server_not_found(server_id, name)
        except RoleLimitExceededException as e:
            self.ui.create_role_failed_limit_exceeded(server_id, name, e.limit)
        except StoreError as e:
            self.ui.create_role_failed_store_error(server_id, name, str(e))
        else:
            self.ui.created_role(server_id, role)
