from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Dict, Optional, Tuple


class ChangeType(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """A change notification for one document.

    before is None for ADDED and after is None for REMOVED.  Delivery is at-least-once with no
    ordering guarantee across documents, so consumers must be idempotent.
    """

    change_type: ChangeType
    path: str
    before: Optional[Dict[str, Any]]
    after: Optional[Dict[str, Any]]

    @property
    def collection_path(self) -> str:
        return split_path(self.path)[0]

    @property
    def document_id(self) -> str:
        return split_path(self.path)[1]

    def field_changed(self, name: str) -> bool:
        old = (self.before or {}).get(name)
        new = (self.after or {}).get(name)
        return old != new


def split_path(path: str) -> Tuple[str, str]:
    """Split a document path into its collection path and document id."""
    collection, _, document_id = path.rstrip("/").rpartition("/")
    return collection, document_id


def join_path(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts)
