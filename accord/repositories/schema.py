"""Manage the database schema.

SQLAlchemy only knows about the tables whose model classes have been imported, so every model is
imported here.  If any new models are added, be sure to also add them to the import list.
"""

from io import StringIO
from typing import TYPE_CHECKING

from sqlalchemy.schema import CreateIndex, CreateTable

from accord.models.base.model_base import Model
from accord.models.base.session import get_db_engine
from accord.models.document import Document  # noqa: F401

if TYPE_CHECKING:
    from accord.settings import Settings


class SchemaRepository:
    """Manipulate the database schema."""

    def __init__(self, settings):
        # type: (Settings) -> None
        self.settings = settings

    def drop_schema(self):
        # type: () -> None
        """Used primarily for tests."""
        db_engine = get_db_engine(self.settings.database)
        Model.metadata.drop_all(db_engine)

    def dump_schema(self):
        # type: () -> str
        db_engine = get_db_engine(self.settings.database)
        sql = StringIO()
        for table in Model.metadata.sorted_tables:
            sql.write(str(CreateTable(table).compile(db_engine)))
            for index in table.indexes:
                sql.write(str(CreateIndex(index).compile(db_engine)))
        return sql.getvalue()

    def initialize_schema(self):
        # type: () -> None
        db_engine = get_db_engine(self.settings.database)
        Model.metadata.create_all(db_engine)
