from typing import TYPE_CHECKING

from accord.entities.document import split_path
from accord.repositories.interfaces import ProfileRepository
from accord.repositories.paths import member_path, presence_path, profile_path

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentStore, Listener, Subscription
    from typing import Any, Dict, List, Mapping, Optional


class DocumentProfileRepository(ProfileRepository):
    """Presence signals spread over the profile, presence, and member documents."""

    def __init__(self, store):
        # type: (DocumentStore) -> None
        self.store = store

    def source_paths(self, uid, server_id=None):
        # type: (str, Optional[str]) -> List[str]
        paths = [profile_path(uid), presence_path(uid)]
        if server_id:
            paths.append(member_path(server_id, uid))
        return paths

    def presence_sources(self, uid, server_id=None):
        # type: (str, Optional[str]) -> List[Optional[Dict[str, Any]]]
        return [self.store.read_document(path) for path in self.source_paths(uid, server_id)]

    def write_presence(self, uid, payload):
        # type: (str, Mapping[str, Any]) -> None
        self.store.write_document(presence_path(uid), payload, merge=False)

    def update_profile(self, uid, update):
        # type: (str, Mapping[str, Any]) -> None
        self.store.write_document(profile_path(uid), update)

    def watch(self, uid, callback, server_id=None):
        # type: (str, Listener, Optional[str]) -> List[Subscription]
        subscriptions = []
        for path in self.source_paths(uid, server_id):
            collection, document_id = split_path(path)
            subscriptions.append(self.store.subscribe(collection, callback, document_id))
        return subscriptions
