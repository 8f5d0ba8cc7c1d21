from typing import TYPE_CHECKING

from accord.usecases.change_default_role import ChangeDefaultRole
from accord.usecases.create_role import CreateRole
from accord.usecases.delete_role import DeleteRole
from accord.usecases.modify_member_roles import ModifyMemberRoles
from accord.usecases.recompute_permissions import RecomputePermissions
from accord.usecases.update_role_permissions import UpdateRolePermissions

if TYPE_CHECKING:
    from accord.services.factory import ServiceFactory
    from accord.settings import Settings
    from accord.usecases.change_default_role import ChangeDefaultRoleUI
    from accord.usecases.create_role import CreateRoleUI
    from accord.usecases.delete_role import DeleteRoleUI
    from accord.usecases.modify_member_roles import ModifyMemberRolesUI
    from accord.usecases.recompute_permissions import RecomputePermissionsUI
    from accord.usecases.update_role_permissions import UpdateRolePermissionsUI


class UseCaseFactory:
    """Create use cases with dependency injection.

    Use cases that change permissions share one cascade controller, so work queued by one use case
    is never processed twice by another.
    """

    def __init__(self, settings, service_factory):
        # type: (Settings, ServiceFactory) -> None
        self.settings = settings
        self.service_factory = service_factory
        self.cascade = service_factory.create_cascade_controller()

    def create_change_default_role_usecase(self, actor, ui):
        # type: (str, ChangeDefaultRoleUI) -> ChangeDefaultRole
        role_service = self.service_factory.create_role_service()
        permission_service = self.service_factory.create_permission_service()
        return ChangeDefaultRole(actor, ui, role_service, permission_service, self.cascade)

    def create_create_role_usecase(self, actor, ui):
        # type: (str, CreateRoleUI) -> CreateRole
        role_service = self.service_factory.create_role_service()
        permission_service = self.service_factory.create_permission_service()
        return CreateRole(actor, ui, role_service, permission_service)

    def create_delete_role_usecase(self, actor, ui):
        # type: (str, DeleteRoleUI) -> DeleteRole
        role_service = self.service_factory.create_role_service()
        permission_service = self.service_factory.create_permission_service()
        return DeleteRole(actor, ui, role_service, permission_service, self.cascade)

    def create_modify_member_roles_usecase(self, actor, ui):
        # type: (str, ModifyMemberRolesUI) -> ModifyMemberRoles
        member_service = self.service_factory.create_member_service()
        role_service = self.service_factory.create_role_service()
        permission_service = self.service_factory.create_permission_service()
        return ModifyMemberRoles(
            actor, ui, member_service, role_service, permission_service, self.cascade
        )

    def create_recompute_permissions_usecase(self, actor, ui):
        # type: (str, RecomputePermissionsUI) -> RecomputePermissions
        permission_service = self.service_factory.create_permission_service()
        return RecomputePermissions(actor, ui, permission_service)

    def create_update_role_permissions_usecase(self, actor, ui):
        # type: (str, UpdateRolePermissionsUI) -> UpdateRolePermissions
        role_service = self.service_factory.create_role_service()
        permission_service = self.service_factory.create_permission_service()
        return UpdateRolePermissions(actor, ui, role_service, permission_service, self.cascade)
