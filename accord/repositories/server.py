from typing import TYPE_CHECKING

from accord.entities.server import Server
from accord.repositories.interfaces import ServerRepository
from accord.repositories.paths import server_path

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentStore
    from typing import Any, Mapping, Optional


class DocumentServerRepository(ServerRepository):
    def __init__(self, store):
        # type: (DocumentStore) -> None
        self.store = store

    def get_server(self, server_id):
        # type: (str) -> Optional[Server]
        data = self.store.read_document(server_path(server_id))
        if data is None:
            return None
        return Server.from_document(server_id, data)

    def update_server(self, server_id, update):
        # type: (str, Mapping[str, Any]) -> None
        self.store.write_document(server_path(server_id), update)
