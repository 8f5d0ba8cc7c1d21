import copy
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING

from accord.entities.document import ChangeEvent, ChangeType, split_path
from accord.repositories.interfaces import DocumentStore, Subscription

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentWrite, Listener
    from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


def normalize_document_path(path):
    # type: (str) -> str
    """Validate and normalize a document path (an even number of non-empty segments)."""
    segments = path.strip("/").split("/")
    if len(segments) % 2 != 0 or not all(segments):
        raise ValueError(f"{path} is not a document path")
    return "/".join(segments)


def normalize_collection_path(path):
    # type: (str) -> str
    """Validate and normalize a collection path (an odd number of non-empty segments)."""
    segments = path.strip("/").split("/")
    if len(segments) % 2 != 1 or not all(segments):
        raise ValueError(f"{path} is not a collection path")
    return "/".join(segments)


def merge_fields(current, update):
    # type: (Optional[Mapping[str, Any]], Mapping[str, Any]) -> Dict[str, Any]
    """Merge an update into a document, replacing whole top-level fields."""
    merged = dict(current or {})
    merged.update(copy.deepcopy(dict(update)))
    return merged


class _Subscription(Subscription):
    def __init__(self, store, collection, callback, document_id):
        # type: (NotifyingDocumentStore, str, Listener, Optional[str]) -> None
        self.store = store
        self.collection = collection
        self.callback = callback
        self.document_id = document_id

    def matches(self, event):
        # type: (ChangeEvent) -> bool
        if event.collection_path != self.collection:
            return False
        return self.document_id is None or event.document_id == self.document_id

    def unsubscribe(self):
        # type: () -> None
        self.store.remove_subscription(self)


class NotifyingDocumentStore(DocumentStore):
    """Shared write and notification logic for document store backends.

    Backends only provide loading and an atomic commit of a set of document changes.  This class
    stages merges, drops writes that would not change anything, and delivers a ChangeEvent to
    every matching subscriber after the commit succeeds.  Delivery is synchronous, so a listener
    that writes to the store sees its own writes delivered before the outer write returns.
    """

    def __init__(self):
        # type: () -> None
        self._logger = logging.getLogger(__name__)
        self._subscriptions = []  # type: List[_Subscription]

    @abstractmethod
    def _load(self, path):
        # type: (str) -> Optional[Dict[str, Any]]
        pass

    @abstractmethod
    def _load_collection(self, collection):
        # type: (str) -> Dict[str, Dict[str, Any]]
        pass

    @abstractmethod
    def _commit(self, changes):
        # type: (List[Tuple[str, Optional[Dict[str, Any]]]]) -> None
        """Atomically store new document contents.  None deletes the document."""
        pass

    def subscribe(self, collection_path, callback, document_id=None):
        # type: (str, Listener, Optional[str]) -> Subscription
        collection = normalize_collection_path(collection_path)
        subscription = _Subscription(self, collection, callback, document_id)
        self._subscriptions.append(subscription)
        return subscription

    def remove_subscription(self, subscription):
        # type: (_Subscription) -> None
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def read_document(self, path):
        # type: (str) -> Optional[Dict[str, Any]]
        return self._load(normalize_document_path(path))

    def list_documents(self, collection_path):
        # type: (str) -> Dict[str, Dict[str, Any]]
        return self._load_collection(normalize_collection_path(collection_path))

    def write_document(self, path, update, merge=True):
        # type: (str, Mapping[str, Any], bool) -> None
        self._apply([(path, update)], merge)

    def batch_write(self, writes):
        # type: (List[DocumentWrite]) -> None
        self._apply(writes, merge=True)

    def delete_document(self, path):
        # type: (str) -> None
        path = normalize_document_path(path)
        before = self._load(path)
        if before is None:
            return
        self._commit([(path, None)])
        self._notify([ChangeEvent(ChangeType.REMOVED, path, before, None)])

    def _apply(self, writes, merge):
        # type: (Iterable[DocumentWrite], bool) -> None
        staged = {}  # type: Dict[str, List[Optional[Dict[str, Any]]]]
        for path, update in writes:
            path = normalize_document_path(path)
            if path not in staged:
                before = self._load(path)
                staged[path] = [before, before]
            current = staged[path][1]
            staged[path][1] = merge_fields(current if merge else None, update)

        changes = [(path, after) for path, (before, after) in staged.items() if before != after]
        if not changes:
            return
        self._commit(changes)

        events = []
        for path, after in changes:
            before = staged[path][0]
            change_type = ChangeType.ADDED if before is None else ChangeType.MODIFIED
            events.append(ChangeEvent(change_type, path, before, after))
        self._notify(events)

    def _notify(self, events):
        # type: (List[ChangeEvent]) -> None
        for event in events:
            for subscription in list(self._subscriptions):
                if not subscription.matches(event):
                    continue
                try:
                    subscription.callback(event)
                except Exception:
                    self._logger.exception("Listener failed handling change to %s", event.path)


class InMemoryDocumentStore(NotifyingDocumentStore):
    """Document store kept in a dictionary, used for tests and embedded use."""

    def __init__(self):
        # type: () -> None
        super().__init__()
        self._documents = {}  # type: Dict[str, Dict[str, Any]]

    def _load(self, path):
        # type: (str) -> Optional[Dict[str, Any]]
        data = self._documents.get(path)
        return copy.deepcopy(data) if data is not None else None

    def _load_collection(self, collection):
        # type: (str) -> Dict[str, Dict[str, Any]]
        documents = {}
        for path, data in self._documents.items():
            parent, document_id = split_path(path)
            if parent == collection:
                documents[document_id] = copy.deepcopy(data)
        return documents

    def _commit(self, changes):
        # type: (List[Tuple[str, Optional[Dict[str, Any]]]]) -> None
        for path, data in changes:
            if data is None:
                self._documents.pop(path, None)
            else:
                self._documents[path] = copy.deepcopy(data)
