"""Cascade recomputation of cached member permissions.

Every mutation that can change what a member is allowed to do (editing a role's permissions,
deleting a role, assigning or removing roles, changing a member's base role, switching the
server's default role) enqueues the affected members here.  drain() recomputes them.

The queue is de-duplicated, and recomputation is idempotent and order-independent, so a member
enqueued by several triggers is recomputed once per drain and the result converges no matter in
which order events arrive.  The controller never rolls back the mutation that triggered it: a
failed cache write is logged and reported, and the cache stays stale until the next recompute.
"""

import logging
from collections import OrderedDict
from typing import TYPE_CHECKING

from accord.constants import EVERYONE_ROLE_NAME
from accord.entities.document import ChangeType, split_path
from accord.entities.permission import CascadeResult
from accord.entities.role import Role
from accord.entities.server import Server
from accord.exc import StoreError
from accord.repositories.paths import members_path, roles_path, server_path

if TYPE_CHECKING:
    from accord.entities.document import ChangeEvent
    from accord.repositories.interfaces import DocumentStore, Subscription
    from accord.usecases.interfaces import PermissionInterface, RoleInterface
    from typing import Dict, Iterable, List, Optional, Tuple


class CascadeController:
    """Queue and process permission recomputation.

    Triggers only enqueue.  Call drain() to process the queue, or attach() the controller to a
    document store so that changes observed there are enqueued and drained automatically.
    """

    def __init__(self, permission_service, role_service, store=None):
        # type: (PermissionInterface, RoleInterface, Optional[DocumentStore]) -> None
        self._logger = logging.getLogger(__name__)
        self.permission_service = permission_service
        self.role_service = role_service
        self.store = store
        self._queue = OrderedDict()  # type: OrderedDict[Tuple[str, str], None]
        self._draining = False
        self._subscriptions = {}  # type: Dict[str, List[Subscription]]

    @property
    def pending(self):
        # type: () -> List[Tuple[str, str]]
        return list(self._queue)

    def _enqueue(self, server_id, uids):
        # type: (str, Iterable[str]) -> int
        count = 0
        for uid in uids:
            if (server_id, uid) not in self._queue:
                self._queue[(server_id, uid)] = None
                count += 1
        return count

    def role_permissions_changed(self, server_id, role_id):
        # type: (str, str) -> None
        affected = self.permission_service.members_affected_by_role(server_id, role_id)
        count = self._enqueue(server_id, affected)
        self._logger.debug("Role %s in %s changed, queued %d members", role_id, server_id, count)

    def role_deleted(self, server_id, role_id, former_holders):
        # type: (str, str, Iterable[str]) -> None
        count = self._enqueue(server_id, former_holders)
        self._logger.debug("Role %s in %s deleted, queued %d members", role_id, server_id, count)

    def member_changed(self, server_id, uid):
        # type: (str, str) -> None
        self._enqueue(server_id, [uid])

    def default_role_changed(self, server_id):
        # type: (str) -> None
        count = self._enqueue(server_id, self.permission_service.all_members(server_id))
        self._logger.debug("Default role of %s changed, queued %d members", server_id, count)

    def recompute_all(self, server_id):
        # type: (str) -> None
        self._enqueue(server_id, self.permission_service.all_members(server_id))

    def drain(self):
        # type: () -> CascadeResult
        """Recompute every queued member, grouped by server.

        Work enqueued while draining (for example by change events caused by the cache writes) is
        picked up by the same loop.  A nested call returns an empty result and leaves the work to
        the outer loop.
        """
        result = CascadeResult()
        if self._draining:
            return result

        self._draining = True
        try:
            while self._queue:
                by_server = OrderedDict()  # type: OrderedDict[str, List[str]]
                for server_id, uid in self._queue:
                    by_server.setdefault(server_id, []).append(uid)
                self._queue.clear()
                for server_id, uids in by_server.items():
                    try:
                        server_result = self.permission_service.recompute_members(server_id, uids)
                    except StoreError as e:
                        self._logger.exception("Recomputing permissions in %s failed", server_id)
                        for uid in uids:
                            result.failures[uid] = str(e)
                    else:
                        result.merge(server_result)
        finally:
            self._draining = False

        if result.failures:
            self._logger.warning(
                "Cached permissions of %d members could not be written: %s",
                len(result.failures),
                ", ".join(result.failed_uids),
            )
        return result

    def attach(self, server_id):
        # type: (str) -> None
        """Watch a server's documents and cascade on every relevant change."""
        if not self.store:
            raise ValueError("CascadeController has no document store to attach to")
        if server_id in self._subscriptions:
            return

        def listener(event):
            # type: (ChangeEvent) -> None
            self.handle_change(server_id, event)

        collection, document_id = split_path(server_path(server_id))
        self._subscriptions[server_id] = [
            self.store.subscribe(collection, listener, document_id),
            self.store.subscribe(roles_path(server_id), listener),
            self.store.subscribe(members_path(server_id), listener),
        ]
        self._logger.info("Watching %s for permission changes", server_id)

    def detach(self, server_id):
        # type: (str) -> None
        for subscription in self._subscriptions.pop(server_id, []):
            subscription.unsubscribe()

    def handle_change(self, server_id, event):
        # type: (str, ChangeEvent) -> None
        """Map one observed document change to the matching trigger and drain."""
        if event.collection_path == roles_path(server_id):
            self._handle_role_change(server_id, event)
        elif event.collection_path == members_path(server_id):
            # Only assignment changes matter.  The cache fields written by drain() itself are
            # ignored here, which is what keeps the controller from re-triggering itself.
            if event.change_type == ChangeType.REMOVED:
                return
            if event.change_type == ChangeType.ADDED or (
                event.field_changed("roleIds") or event.field_changed("role")
            ):
                self.member_changed(server_id, event.document_id)
        elif event.path == server_path(server_id):
            if event.field_changed("defaultRoleId"):
                self.default_role_changed(server_id)
        self.drain()

    def _handle_role_change(self, server_id, event):
        # type: (str, ChangeEvent) -> None
        role_id = event.document_id
        if event.change_type == ChangeType.REMOVED:
            holders = self.role_service.remove_role_references(server_id, role_id)
            self.role_deleted(server_id, role_id, holders)
            if self._was_default_role(server_id, Role.from_document(role_id, event.before or {})):
                self.default_role_changed(server_id)
            return

        before = Role.from_document(role_id, event.before or {})
        after = Role.from_document(role_id, event.after or {})
        if event.change_type == ChangeType.ADDED or (
            before.normalized_permissions() != after.normalized_permissions()
            or before.is_owner_role != after.is_owner_role
            or before.is_everyone_role != after.is_everyone_role
            or before.name.lower() != after.name.lower()
        ):
            self.role_permissions_changed(server_id, role_id)
        if event.change_type == ChangeType.MODIFIED and (
            _is_default_candidate(before) or _is_default_candidate(after)
        ):
            # Which candidate is the default depends on these fields, so members that held the old
            # default only implicitly are requeued as well.
            if (
                before.is_everyone_role != after.is_everyone_role
                or before.name.strip().lower() != after.name.strip().lower()
                or before.position != after.position
            ):
                self.default_role_changed(server_id)

    def _was_default_role(self, server_id, role):
        # type: (str, Role) -> bool
        """Whether a just-deleted role may have been the server's default role."""
        if _is_default_candidate(role):
            return True
        if not self.store:
            return False
        data = self.store.read_document(server_path(server_id))
        if data is None:
            return False
        return Server.from_document(server_id, data).default_role_id == role.id


def _is_default_candidate(role):
    # type: (Role) -> bool
    return role.is_everyone_role or role.name.strip().lower() == EVERYONE_ROLE_NAME
