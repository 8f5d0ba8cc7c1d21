import logging
from typing import TYPE_CHECKING

from accord.entities.channel import ChannelNotFoundException
from accord.entities.member import MemberNotFoundException
from accord.entities.permission import CascadeResult
from accord.entities.server import ServerNotFoundException
from accord.exc import StoreError
from accord.graph import MembershipGraph
from accord.permissions import canonical_key
from accord.resolution import (
    can_view_channel,
    resolve_channel_permissions,
    resolve_effective_permissions,
    select_default_role,
)
from accord.usecases.interfaces import PermissionInterface

if TYPE_CHECKING:
    from accord.entities.channel import Channel
    from accord.entities.member import Member
    from accord.entities.permission import EffectivePermissions
    from accord.entities.role import Role
    from accord.entities.server import Server
    from accord.repositories.interfaces import (
        BatchWriteRepository,
        ChannelRepository,
        DocumentWrite,
        MemberRepository,
        RoleRepository,
        ServerRepository,
    )
    from accord.settings import Settings
    from typing import Dict, Iterable, List, Optional, Set, Tuple


class PermissionService(PermissionInterface):
    """Resolve effective permissions and keep the per-member caches in sync.

    The cached perms map and permissionBits on each member document are derived data.  They are
    rewritten whenever they disagree with what resolution produces from the current roles, and
    never consulted when making a decision.
    """

    def __init__(
        self,
        settings,  # type: Settings
        server_repository,  # type: ServerRepository
        role_repository,  # type: RoleRepository
        member_repository,  # type: MemberRepository
        channel_repository,  # type: ChannelRepository
        batch_write_repository,  # type: BatchWriteRepository
    ):
        # type: (...) -> None
        self._logger = logging.getLogger(__name__)
        self.settings = settings
        self.server_repository = server_repository
        self.role_repository = role_repository
        self.member_repository = member_repository
        self.channel_repository = channel_repository
        self.batch_write_repository = batch_write_repository

    def _load_roles(self, server_id):
        # type: (str) -> Tuple[Optional[Server], Dict[str, Role], Optional[Role]]
        server = self.server_repository.get_server(server_id)
        roles = self.role_repository.list_roles(server_id)
        return server, roles, select_default_role(server, roles)

    def _get_member(self, server_id, uid):
        # type: (str, str) -> Member
        member = self.member_repository.get_member(server_id, uid)
        if not member:
            raise MemberNotFoundException(server_id, uid)
        return member

    def _get_channel(self, server_id, channel_id):
        # type: (str, str) -> Channel
        channel = self.channel_repository.get_channel(server_id, channel_id)
        if not channel:
            raise ChannelNotFoundException(server_id, channel_id)
        return channel

    def effective_permissions_for(self, server_id, uid):
        # type: (str, str) -> EffectivePermissions
        member = self._get_member(server_id, uid)
        _, roles, default_role = self._load_roles(server_id)
        return resolve_effective_permissions(
            member, roles, default_role, self.settings.admin_override_permission
        )

    def member_has_permission(self, server_id, uid, permission):
        # type: (str, str, str) -> bool
        """Whether a member holds a permission.  Members that do not exist hold nothing."""
        try:
            effective = self.effective_permissions_for(server_id, uid)
        except MemberNotFoundException:
            return False
        return effective.has(canonical_key(permission))

    def channel_permissions_for(self, server_id, uid, channel_id):
        # type: (str, str, str) -> EffectivePermissions
        member = self._get_member(server_id, uid)
        channel = self._get_channel(server_id, channel_id)
        _, roles, default_role = self._load_roles(server_id)
        return resolve_channel_permissions(
            member, roles, default_role, channel, self.settings.admin_override_permission
        )

    def can_view_channel(self, server_id, uid, channel_id):
        # type: (str, str, str) -> bool
        member = self._get_member(server_id, uid)
        channel = self._get_channel(server_id, channel_id)
        _, roles, default_role = self._load_roles(server_id)
        return can_view_channel(
            member, roles, default_role, channel, self.settings.admin_override_permission
        )

    def membership_graph(self, server_id):
        # type: (str) -> MembershipGraph
        roles = self.role_repository.list_roles(server_id)
        members = self.member_repository.list_members(server_id)
        return MembershipGraph.build(server_id, roles, members)

    def all_members(self, server_id):
        # type: (str) -> Set[str]
        return set(self.member_repository.list_members(server_id))

    def members_affected_by_role(self, server_id, role_id):
        # type: (str, str) -> Set[str]
        """Members whose permissions depend on a role.

        That is every holder of the role, plus every non-owner member if the role is currently the
        server's default role.
        """
        _, _, default_role = self._load_roles(server_id)
        graph = self.membership_graph(server_id)
        affected = graph.members_with_role(role_id)
        if default_role and default_role.id == role_id:
            affected |= graph.non_owner_members()
        return affected

    def recompute_for_member(self, server_id, uid):
        # type: (str, str) -> EffectivePermissions
        """Recompute one member and rewrite their cache if it is stale.

        Unlike recompute_members, a store failure propagates to the caller.
        """
        member = self._get_member(server_id, uid)
        _, roles, default_role = self._load_roles(server_id)
        effective = resolve_effective_permissions(
            member, roles, default_role, self.settings.admin_override_permission
        )
        if not self._cache_matches(member, effective):
            self._logger.info("Updating cached permissions of %s in %s", uid, server_id)
            path, update = self.member_repository.permission_cache_write(
                server_id, uid, effective.permissions, effective.bits
            )
            self.batch_write_repository.commit([(path, update)])
        return effective

    def recompute_members(self, server_id, uids):
        # type: (str, Iterable[str]) -> CascadeResult
        """Recompute a group of members, writing only stale caches, in bounded batches.

        A failed batch is logged and its members are reported in the result's failures.  The
        remaining batches are still attempted.  Members that no longer exist are skipped.
        """
        result = CascadeResult()
        wanted = set(uids)
        if not wanted:
            return result

        _, roles, default_role = self._load_roles(server_id)
        members = self.member_repository.list_members(server_id)

        writes = []  # type: List[DocumentWrite]
        pending = {}  # type: Dict[str, str]
        for uid in sorted(wanted):
            member = members.get(uid)
            if not member:
                self._logger.debug("Skipping recompute of departed member %s in %s", uid, server_id)
                continue
            effective = resolve_effective_permissions(
                member, roles, default_role, self.settings.admin_override_permission
            )
            if self._cache_matches(member, effective):
                result.unchanged.append(uid)
                continue
            path, update = self.member_repository.permission_cache_write(
                server_id, uid, effective.permissions, effective.bits
            )
            writes.append((path, update))
            pending[path] = uid

        for batch in self.batch_write_repository.batches(writes):
            batch_uids = [pending[path] for path, _ in batch]
            try:
                self.batch_write_repository.commit(batch)
            except StoreError as e:
                self._logger.exception(
                    "Writing cached permissions for %d members of %s failed",
                    len(batch_uids),
                    server_id,
                )
                for uid in batch_uids:
                    result.failures[uid] = str(e)
            else:
                result.updated.extend(batch_uids)

        if result.updated or result.failures:
            self._logger.info(
                "Recomputed permissions in %s: %d updated, %d unchanged, %d failed",
                server_id,
                len(result.updated),
                len(result.unchanged),
                len(result.failures),
            )
        return result

    def recompute_all(self, server_id):
        # type: (str) -> CascadeResult
        if not self.server_repository.get_server(server_id):
            raise ServerNotFoundException(server_id)
        return self.recompute_members(server_id, self.all_members(server_id))

    @staticmethod
    def _cache_matches(member, effective):
        # type: (Member, EffectivePermissions) -> bool
        return (
            member.permission_bits == effective.bits
            and member.last_computed_permissions == effective.permissions
        )
