from typing import TYPE_CHECKING

from accord.cascade import CascadeController
from accord.services.member import MemberService
from accord.services.permission import PermissionService
from accord.services.presence import PresenceService
from accord.services.role import RoleService

if TYPE_CHECKING:
    from accord.repositories.interfaces import RepositoryFactory
    from accord.settings import Settings
    from accord.usecases.interfaces import (
        MemberInterface,
        PermissionInterface,
        PresenceInterface,
        RoleInterface,
    )


class ServiceFactory:
    """Construct backend services."""

    def __init__(self, settings, repository_factory):
        # type: (Settings, RepositoryFactory) -> None
        self.settings = settings
        self.repository_factory = repository_factory

    def create_cascade_controller(self):
        # type: () -> CascadeController
        permission_service = self.create_permission_service()
        role_service = self.create_role_service()
        return CascadeController(permission_service, role_service, self.repository_factory.store)

    def create_member_service(self):
        # type: () -> MemberInterface
        server_repository = self.repository_factory.create_server_repository()
        role_repository = self.repository_factory.create_role_repository()
        member_repository = self.repository_factory.create_member_repository()
        return MemberService(self.settings, server_repository, role_repository, member_repository)

    def create_permission_service(self):
        # type: () -> PermissionInterface
        return PermissionService(
            self.settings,
            self.repository_factory.create_server_repository(),
            self.repository_factory.create_role_repository(),
            self.repository_factory.create_member_repository(),
            self.repository_factory.create_channel_repository(),
            self.repository_factory.create_batch_write_repository(),
        )

    def create_presence_service(self):
        # type: () -> PresenceInterface
        profile_repository = self.repository_factory.create_profile_repository()
        return PresenceService(self.settings, profile_repository)

    def create_role_service(self):
        # type: () -> RoleInterface
        return RoleService(
            self.settings,
            self.repository_factory.create_server_repository(),
            self.repository_factory.create_role_repository(),
            self.repository_factory.create_member_repository(),
            self.repository_factory.create_channel_repository(),
            self.repository_factory.create_batch_write_repository(),
        )
