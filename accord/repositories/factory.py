import logging
from typing import TYPE_CHECKING

from accord.models.base.session import get_db_engine, redacted_url, Session
from accord.repositories.batch import DocumentBatchWriteRepository
from accord.repositories.channel import DocumentChannelRepository
from accord.repositories.document_store import InMemoryDocumentStore
from accord.repositories.interfaces import RepositoryFactory
from accord.repositories.member import DocumentMemberRepository
from accord.repositories.profile import DocumentProfileRepository
from accord.repositories.role import DocumentRoleRepository
from accord.repositories.schema import SchemaRepository
from accord.repositories.server import DocumentServerRepository
from accord.repositories.sql_document_store import SQLDocumentStore

if TYPE_CHECKING:
    from accord.repositories.interfaces import (
        BatchWriteRepository,
        ChannelRepository,
        DocumentStore,
        MemberRepository,
        ProfileRepository,
        RoleRepository,
        ServerRepository,
    )
    from accord.settings import Settings
    from typing import Optional


class SessionFactory:
    """Create database sessions for the SQL document store."""

    def __init__(self, settings):
        # type: (Settings) -> None
        self.settings = settings

    def create_session(self):
        # type: () -> Session
        logging.getLogger(__name__).info(
            "Connecting to database %s", redacted_url(self.settings.database)
        )
        db_engine = get_db_engine(self.settings.database)
        Session.configure(bind=db_engine)
        return Session()


class DocumentRepositoryFactory(RepositoryFactory):
    """Create repositories, which abstract storage away from the document store.

    A store may be injected, primarily for testing.  Otherwise the store is created lazily on
    first use: a SQLDocumentStore if a database is configured and an InMemoryDocumentStore if not.
    All repositories created by one factory share the same store, and therefore the same change
    subscriptions.
    """

    def __init__(self, settings, store=None, session_factory=None):
        # type: (Settings, Optional[DocumentStore], Optional[SessionFactory]) -> None
        self.settings = settings
        self.session_factory = session_factory or SessionFactory(settings)
        self._store = store

    @property
    def store(self):
        # type: () -> DocumentStore
        if not self._store:
            if self.settings.database:
                self._store = SQLDocumentStore(self.session_factory.create_session())
            else:
                self._store = InMemoryDocumentStore()
        return self._store

    def create_batch_write_repository(self):
        # type: () -> BatchWriteRepository
        return DocumentBatchWriteRepository(self.store, self.settings.batch_write_limit)

    def create_channel_repository(self):
        # type: () -> ChannelRepository
        return DocumentChannelRepository(self.store)

    def create_member_repository(self):
        # type: () -> MemberRepository
        return DocumentMemberRepository(self.store)

    def create_profile_repository(self):
        # type: () -> ProfileRepository
        return DocumentProfileRepository(self.store)

    def create_role_repository(self):
        # type: () -> RoleRepository
        return DocumentRoleRepository(self.store)

    def create_schema_repository(self):
        # type: () -> SchemaRepository
        return SchemaRepository(self.settings)

    def create_server_repository(self):
        # type: () -> ServerRepository
        return DocumentServerRepository(self.store)
