from typing import TYPE_CHECKING
from uuid import uuid4

from accord.entities.role import Role
from accord.repositories.interfaces import RoleRepository
from accord.repositories.paths import role_path, roles_path

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentStore
    from typing import Any, Dict, Mapping, Optional


class DocumentRoleRepository(RoleRepository):
    """Roles stored as documents under servers/{server}/roles."""

    def __init__(self, store):
        # type: (DocumentStore) -> None
        self.store = store

    def list_roles(self, server_id):
        # type: (str) -> Dict[str, Role]
        documents = self.store.list_documents(roles_path(server_id))
        return {role_id: Role.from_document(role_id, data) for role_id, data in documents.items()}

    def get_role(self, server_id, role_id):
        # type: (str, str) -> Optional[Role]
        data = self.store.read_document(role_path(server_id, role_id))
        if data is None:
            return None
        return Role.from_document(role_id, data)

    def create_role(self, server_id, data):
        # type: (str, Mapping[str, Any]) -> str
        role_id = uuid4().hex
        self.store.write_document(role_path(server_id, role_id), data, merge=False)
        return role_id

    def update_role(self, server_id, role_id, update):
        # type: (str, str, Mapping[str, Any]) -> None
        self.store.write_document(role_path(server_id, role_id), update)

    def delete_role(self, server_id, role_id):
        # type: (str, str) -> None
        self.store.delete_document(role_path(server_id, role_id))
