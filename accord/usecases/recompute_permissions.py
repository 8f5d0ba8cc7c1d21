from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

from accord.constants import MANAGE_SERVER
from accord.entities.member import MemberNotFoundException
from accord.entities.server import ServerNotFoundException
from accord.exc import StoreError

if TYPE_CHECKING:
    from accord.entities.permission import CascadeResult, EffectivePermissions
    from accord.usecases.interfaces import PermissionInterface
    from typing import List


class RecomputePermissionsUI(metaclass=ABCMeta):
    """Abstract base class for UI for RecomputePermissions."""

    @abstractmethod
    def recomputed_member_permissions(self, server_id, uid, permissions):
        # type: (str, str, EffectivePermissions) -> None
        pass

    @abstractmethod
    def recompute_member_permissions_failed_not_found(self, server_id, uid):
        # type: (str, str) -> None
        pass

    @abstractmethod
    def recompute_member_permissions_failed_store_error(self, server_id, uid, message):
        # type: (str, str, str) -> None
        pass

    @abstractmethod
    def recomputed_all_permissions(self, server_id, result):
        # type: (str, CascadeResult) -> None
        pass

    @abstractmethod
    def recomputed_all_permissions_with_warnings(self, server_id, failed_uids):
        # type: (str, List[str]) -> None
        pass

    @abstractmethod
    def recompute_all_permissions_failed_not_found(self, server_id):
        # type: (str) -> None
        pass

    @abstractmethod
    def recompute_all_permissions_failed_permission_denied(self, server_id):
        # type: (str) -> None
        pass

    @abstractmethod
    def recompute_all_permissions_failed_store_error(self, server_id, message):
        # type: (str, str) -> None
        pass


class RecomputePermissions:
    """Manually repair cached permissions.

    Refreshing one member's cache changes nothing they are allowed to do, so any actor may ask
    for it.  Rewriting a whole server requires MANAGE_SERVER.
    """

    def __init__(self, actor, ui, permission_service):
        # type: (str, RecomputePermissionsUI, PermissionInterface) -> None
        self.actor = actor
        self.ui = ui
        self.permission_service = permission_service

    def recompute_for_member(self, server_id, uid):
        # type: (str, str) -> None
        try:
            permissions = self.permission_service.recompute_for_member(server_id, uid)
        except MemberNotFoundException:
            self.ui.recompute_member_permissions_failed_not_found(server_id, uid)
        except StoreError as e:
            self.ui.recompute_member_permissions_failed_store_error(server_id, uid, str(e))
        else:
            self.ui.recomputed_member_permissions(server_id, uid, permissions)

    def recompute_all(self, server_id):
        # type: (str) -> None
        if not self.permission_service.member_has_permission(server_id, self.actor, MANAGE_SERVER):
            self.ui.recompute_all_permissions_failed_permission_denied(server_id)
            return

        try:
            result = self.permission_service.recompute_all(server_id)
        except ServerNotFoundException:
            self.ui.recompute_all_permissions_failed_not_found(server_id)
            return
        except StoreError as e:
            self.ui.recompute_all_permissions_failed_store_error(server_id, str(e))
            return

        if result.failures:
            self.ui.recomputed_all_permissions_with_warnings(server_id, result.failed_uids)
        else:
            self.ui.recomputed_all_permissions(server_id, result)
