from typing import TYPE_CHECKING

from accord.entities.member import Member
from accord.repositories.interfaces import MemberRepository
from accord.repositories.paths import member_path, members_path

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentStore, DocumentWrite
    from typing import Any, Dict, List, Mapping, Optional


class DocumentMemberRepository(MemberRepository):
    """Members stored as documents under servers/{server}/members."""

    def __init__(self, store):
        # type: (DocumentStore) -> None
        self.store = store

    def list_members(self, server_id):
        # type: (str) -> Dict[str, Member]
        documents = self.store.list_documents(members_path(server_id))
        return {uid: Member.from_document(uid, data) for uid, data in documents.items()}

    def get_member(self, server_id, uid):
        # type: (str, str) -> Optional[Member]
        data = self.store.read_document(member_path(server_id, uid))
        if data is None:
            return None
        return Member.from_document(uid, data)

    def update_member(self, server_id, uid, update):
        # type: (str, str, Mapping[str, Any]) -> None
        self.store.write_document(member_path(server_id, uid), update)

    def permission_cache_write(self, server_id, uid, permissions, bits):
        # type: (str, str, Dict[str, bool], int) -> DocumentWrite
        return (member_path(server_id, uid), {"perms": dict(permissions), "permissionBits": bits})

    def role_reference_removals(self, server_id, role_id):
        # type: (str, str) -> List[DocumentWrite]
        writes = []  # type: List[DocumentWrite]
        for uid, member in sorted(self.list_members(server_id).items()):
            if role_id in member.role_ids:
                remaining = sorted(member.role_ids - {role_id})
                writes.append((member_path(server_id, uid), {"roleIds": remaining}))
        return writes
