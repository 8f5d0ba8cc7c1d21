"""Interfaces used by use cases to talk to backend services.

Defines the interfaces of the permission, role, member, and presence services shared among
multiple use cases.  The exceptions they throw are defined with the entities they concern.

Do not define UI interfaces to talk to frontends here.  There should be a one-to-one correspondence
between UI interfaces and use cases, so the UI interface is defined in the same file with the use
case.

By convention, all class names here end in Interface.
"""

from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from accord.entities.member import BaseRole, Member
    from accord.entities.permission import CascadeResult, EffectivePermissions
    from accord.entities.presence import PresenceState
    from accord.entities.role import Role
    from accord.graph import MembershipGraph
    from accord.usecases.authorization import Authorization
    from typing import Any, Callable, Iterable, List, Mapping, Optional, Set


class MemberInterface(metaclass=ABCMeta):
    """Abstract base class for member operations."""

    @abstractmethod
    def add_member(self, server_id, uid, authorization):
        # type: (str, str, Authorization) -> Member
        pass

    @abstractmethod
    def add_roles(self, server_id, uid, role_ids, authorization):
        # type: (str, str, Iterable[str], Authorization) -> Member
        pass

    @abstractmethod
    def get_member(self, server_id, uid):
        # type: (str, str) -> Member
        pass

    @abstractmethod
    def remove_roles(self, server_id, uid, role_ids, authorization):
        # type: (str, str, Iterable[str], Authorization) -> Member
        pass

    @abstractmethod
    def set_base_role(self, server_id, uid, base_role, authorization):
        # type: (str, str, BaseRole, Authorization) -> Member
        pass


class PermissionInterface(metaclass=ABCMeta):
    """Abstract base class for permission resolution and cache maintenance."""

    @abstractmethod
    def can_view_channel(self, server_id, uid, channel_id):
        # type: (str, str, str) -> bool
        pass

    @abstractmethod
    def channel_permissions_for(self, server_id, uid, channel_id):
        # type: (str, str, str) -> EffectivePermissions
        pass

    @abstractmethod
    def effective_permissions_for(self, server_id, uid):
        # type: (str, str) -> EffectivePermissions
        pass

    @abstractmethod
    def member_has_permission(self, server_id, uid, permission):
        # type: (str, str, str) -> bool
        pass

    @abstractmethod
    def members_affected_by_role(self, server_id, role_id):
        # type: (str, str) -> Set[str]
        pass

    @abstractmethod
    def all_members(self, server_id):
        # type: (str) -> Set[str]
        pass

    @abstractmethod
    def membership_graph(self, server_id):
        # type: (str) -> MembershipGraph
        pass

    @abstractmethod
    def recompute_for_member(self, server_id, uid):
        # type: (str, str) -> EffectivePermissions
        pass

    @abstractmethod
    def recompute_members(self, server_id, uids):
        # type: (str, Iterable[str]) -> CascadeResult
        pass

    @abstractmethod
    def recompute_all(self, server_id):
        # type: (str) -> CascadeResult
        pass


class PresenceInterface(metaclass=ABCMeta):
    """Abstract base class for presence publishing and classification."""

    @abstractmethod
    def clear_manual_presence(self, uid):
        # type: (str) -> None
        pass

    @abstractmethod
    def presence_for_member(self, uid, server_id=None, now=None):
        # type: (str, Optional[str], Optional[datetime]) -> PresenceState
        pass

    @abstractmethod
    def publish_presence(self, uid, state, now=None):
        # type: (str, PresenceState, Optional[datetime]) -> None
        pass

    @abstractmethod
    def set_manual_presence(self, uid, state, expires_at=None):
        # type: (str, PresenceState, Optional[datetime]) -> None
        pass

    @abstractmethod
    def watch_member(self, uid, callback, server_id=None):
        # type: (str, Callable[[PresenceState], Any], Optional[str]) -> Any
        pass


class RoleInterface(metaclass=ABCMeta):
    """Abstract base class for role operations."""

    @abstractmethod
    def create_role(self, server_id, name, authorization, color=None):
        # type: (str, str, Authorization, Optional[str]) -> Role
        pass

    @abstractmethod
    def delete_role(self, server_id, role_id, authorization):
        # type: (str, str, Authorization) -> Set[str]
        pass

    @abstractmethod
    def get_role(self, server_id, role_id):
        # type: (str, str) -> Role
        pass

    @abstractmethod
    def list_roles(self, server_id):
        # type: (str) -> List[Role]
        pass

    @abstractmethod
    def remove_role_references(self, server_id, role_id):
        # type: (str, str) -> Set[str]
        pass

    @abstractmethod
    def set_default_role(self, server_id, role_id, authorization):
        # type: (str, Optional[str], Authorization) -> None
        pass

    @abstractmethod
    def update_role_permissions(self, server_id, role_id, changes, authorization):
        # type: (str, str, Mapping[str, Any], Authorization) -> Role
        pass
