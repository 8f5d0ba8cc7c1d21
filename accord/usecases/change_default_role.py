from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from accord.constants import MANAGE_SERVER
from accord.entities.role import RoleNotFoundException
from accord.entities.server import ServerNotFoundException
from accord.exc import StoreError
from accord.usecases.authorization import Authorization

if TYPE_CHECKING:
    from accord.cascade import CascadeController
    from accord.usecases.interfaces import PermissionInterface, RoleInterface
    from typing import List, Optional


class ChangeDefaultRoleUI(metaclass=ABCMeta):
    """Abstract base class for UI for ChangeDefaultRole."""

    @abstractmethod
    def changed_default_role(self, server_id, role_id):
        # type: (str, Optional[str]) -> None
        pass

    @abstractmethod
    def changed_default_role_with_warnings(self, server_id, role_id, failed_uids):
        # type: (str, Optional[str], List[str]) -> None
        pass

    @abstractmethod
    def change_default_role_failed_not_found(self, server_id, role_id):
        # type: (str, Optional[str]) -> None
        pass

    @abstractmethod
    def change_default_role_failed_permission_denied(self, server_id, role_id):
        # type: (str, Optional[str]) -> None
        pass

    @abstractmethod
    def change_default_role_failed_store_error(self, server_id, role_id, message):
        # type: (str, Optional[str], str) -> None
        pass


class ChangeDefaultRole:
    """Switch the role every member holds implicitly, then recompute the whole server."""

    def __init__(
        self,
        actor,  # type: str
        ui,  # type: ChangeDefaultRoleUI
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

    def change_default_role(self, server_id, role_id):
        # type: (str, Optional[str]) -> None
        """Point the server at role_id, or at no explicit role if it is None."""
        if not self.permission_service.member_has_permission(server_id, self.actor, MANAGE_SERVER):
            self.ui.change_default_role_failed_permission_denied(server_id, role_id)
            return

        authorization = Authorization(self.actor)
        try:
            self.role_service.set_default_role(server_id, role_id, authorization)
        except (RoleNotFoundException, ServerNotFoundException):
            self.ui.change_default_role_failed_not_found(server_id, role_id)
            return
        except StoreError as e:
            self.ui.change_default_role_failed_store_error(server_id, role_id, str(e))
            return

        self.cascade.default_role_changed(server_id)
        result = self.cascade.drain()
        if result.failures:
            self.ui.changed_default_role_with_warnings(server_id, role_id, result.failed_uids)
        else:
            self.ui.changed_default_role(server_id, role_id)
