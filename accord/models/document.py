import json
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from accord.models.base.model_base import Model, utcnow_without_ms

if TYPE_CHECKING:
    from typing import Any, Dict


def _encode_value(value):
    # type: (Any) -> Any
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


class Document(Model):
    """One stored document, addressed by its collection path and id.

    Document contents are stored as JSON.  Datetimes are written as ISO 8601 strings, which the
    presence timestamp parser reads back.
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "document_id", name="uidx1"),)

    id = Column(Integer, primary_key=True)
    collection = Column(String(length=512), nullable=False, index=True)
    document_id = Column(String(length=255), nullable=False)
    body = Column(Text, nullable=False, default="{}")
    updated_on = Column(DateTime, default=utcnow_without_ms, onupdate=utcnow_without_ms)

    @property
    def data(self):
        # type: () -> Dict[str, Any]
        return json.loads(self.body)

    @data.setter
    def data(self, data):
        # type: (Dict[str, Any]) -> None
        self.body = json.dumps(data, default=_encode_value, sort_keys=True)
