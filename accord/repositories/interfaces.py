from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from accord.entities.channel import Channel
    from accord.entities.document import ChangeEvent
    from accord.entities.member import Member
    from accord.entities.role import Role
    from accord.entities.server import Server
    from accord.repositories.schema import SchemaRepository
    from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

    Listener = Callable[[ChangeEvent], None]
    DocumentWrite = Tuple[str, Mapping[str, Any]]


class Subscription(metaclass=ABCMeta):
    """Handle returned by DocumentStore.subscribe."""

    @abstractmethod
    def unsubscribe(self):
        # type: () -> None
        pass


class DocumentStore(metaclass=ABCMeta):
    """Abstract base class for the hierarchical document store.

    Paths alternate collection and document segments (servers/s1/roles/r1).  Writes are
    last-write-wins.  Every successful write or delete produces a ChangeEvent for subscribers of
    the containing collection.
    """

    @abstractmethod
    def subscribe(self, collection_path, callback, document_id=None):
        # type: (str, Listener, Optional[str]) -> Subscription
        pass

    @abstractmethod
    def read_document(self, path):
        # type: (str) -> Optional[Dict[str, Any]]
        pass

    @abstractmethod
    def list_documents(self, collection_path):
        # type: (str) -> Dict[str, Dict[str, Any]]
        pass

    @abstractmethod
    def write_document(self, path, update, merge=True):
        # type: (str, Mapping[str, Any], bool) -> None
        pass

    @abstractmethod
    def batch_write(self, writes):
        # type: (List[DocumentWrite]) -> None
        """Apply merge writes to several documents atomically."""
        pass

    @abstractmethod
    def delete_document(self, path):
        # type: (str) -> None
        pass


class BatchWriteRepository(metaclass=ABCMeta):
    """Abstract base class for atomic multi-document writes."""

    @abstractmethod
    def batches(self, writes):
        # type: (List[DocumentWrite]) -> Iterator[List[DocumentWrite]]
        pass

    @abstractmethod
    def commit(self, batch):
        # type: (List[DocumentWrite]) -> None
        pass


class ChannelRepository(metaclass=ABCMeta):
    """Abstract base class for channel repositories."""

    @abstractmethod
    def list_channels(self, server_id):
        # type: (str) -> Dict[str, Channel]
        pass

    @abstractmethod
    def get_channel(self, server_id, channel_id):
        # type: (str, str) -> Optional[Channel]
        pass

    @abstractmethod
    def role_reference_removals(self, server_id, role_id):
        # type: (str, str) -> List[DocumentWrite]
        """Writes that drop a role from the allow-list of every channel referencing it."""
        pass


class MemberRepository(metaclass=ABCMeta):
    """Abstract base class for member repositories."""

    @abstractmethod
    def list_members(self, server_id):
        # type: (str) -> Dict[str, Member]
        pass

    @abstractmethod
    def get_member(self, server_id, uid):
        # type: (str, str) -> Optional[Member]
        pass

    @abstractmethod
    def update_member(self, server_id, uid, update):
        # type: (str, str, Mapping[str, Any]) -> None
        pass

    @abstractmethod
    def permission_cache_write(self, server_id, uid, permissions, bits):
        # type: (str, str, Dict[str, bool], int) -> DocumentWrite
        pass

    @abstractmethod
    def role_reference_removals(self, server_id, role_id):
        # type: (str, str) -> List[DocumentWrite]
        """Writes that drop a role from the roleIds of every member holding it."""
        pass


class ProfileRepository(metaclass=ABCMeta):
    """Abstract base class for profile and presence repositories."""

    @abstractmethod
    def presence_sources(self, uid, server_id=None):
        # type: (str, Optional[str]) -> List[Optional[Dict[str, Any]]]
        """Raw documents that carry presence signals, highest priority first."""
        pass

    @abstractmethod
    def source_paths(self, uid, server_id=None):
        # type: (str, Optional[str]) -> List[str]
        pass

    @abstractmethod
    def write_presence(self, uid, payload):
        # type: (str, Mapping[str, Any]) -> None
        pass

    @abstractmethod
    def update_profile(self, uid, update):
        # type: (str, Mapping[str, Any]) -> None
        pass

    @abstractmethod
    def watch(self, uid, callback, server_id=None):
        # type: (str, Listener, Optional[str]) -> List[Subscription]
        """Subscribe to every document presence_sources reads."""
        pass


class RoleRepository(metaclass=ABCMeta):
    """Abstract base class for role repositories."""

    @abstractmethod
    def list_roles(self, server_id):
        # type: (str) -> Dict[str, Role]
        pass

    @abstractmethod
    def get_role(self, server_id, role_id):
        # type: (str, str) -> Optional[Role]
        pass

    @abstractmethod
    def create_role(self, server_id, data):
        # type: (str, Mapping[str, Any]) -> str
        pass

    @abstractmethod
    def update_role(self, server_id, role_id, update):
        # type: (str, str, Mapping[str, Any]) -> None
        pass

    @abstractmethod
    def delete_role(self, server_id, role_id):
        # type: (str, str) -> None
        pass


class ServerRepository(metaclass=ABCMeta):
    """Abstract base class for server repositories."""

    @abstractmethod
    def get_server(self, server_id):
        # type: (str) -> Optional[Server]
        pass

    @abstractmethod
    def update_server(self, server_id, update):
        # type: (str, Mapping[str, Any]) -> None
        pass


class RepositoryFactory(metaclass=ABCMeta):
    """Abstract base class for repository factories."""

    @property
    @abstractmethod
    def store(self):
        # type: () -> DocumentStore
        pass

    @abstractmethod
    def create_batch_write_repository(self):
        # type: () -> BatchWriteRepository
        pass

    @abstractmethod
    def create_channel_repository(self):
        # type: () -> ChannelRepository
        pass

    @abstractmethod
    def create_member_repository(self):
        # type: () -> MemberRepository
        pass

    @abstractmethod
    def create_profile_repository(self):
        # type: () -> ProfileRepository
        pass

    @abstractmethod
    def create_role_repository(self):
        # type: () -> RoleRepository
        pass

    @abstractmethod
    def create_schema_repository(self):
        # type: () -> SchemaRepository
        pass

    @abstractmethod
    def create_server_repository(self):
        # type: () -> ServerRepository
        pass
