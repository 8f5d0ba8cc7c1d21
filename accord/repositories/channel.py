from typing import TYPE_CHECKING

from accord.entities.channel import Channel
from accord.repositories.interfaces import ChannelRepository
from accord.repositories.paths import channel_path, channels_path

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentStore, DocumentWrite
    from typing import Dict, List, Optional


class DocumentChannelRepository(ChannelRepository):
    """Channels stored as documents under servers/{server}/channels."""

    def __init__(self, store):
        # type: (DocumentStore) -> None
        self.store = store

    def list_channels(self, server_id):
        # type: (str) -> Dict[str, Channel]
        documents = self.store.list_documents(channels_path(server_id))
        return {cid: Channel.from_document(cid, data) for cid, data in documents.items()}

    def get_channel(self, server_id, channel_id):
        # type: (str, str) -> Optional[Channel]
        data = self.store.read_document(channel_path(server_id, channel_id))
        if data is None:
            return None
        return Channel.from_document(channel_id, data)

    def role_reference_removals(self, server_id, role_id):
        # type: (str, str) -> List[DocumentWrite]
        writes = []  # type: List[DocumentWrite]
        for channel_id, channel in sorted(self.list_channels(server_id).items()):
            if role_id in channel.allowed_role_ids:
                remaining = sorted(channel.allowed_role_ids - {role_id})
                writes.append((channel_path(server_id, channel_id), {"allowedRoleIds": remaining}))
        return writes
