import logging
from typing import TYPE_CHECKING

from accord.repositories.interfaces import BatchWriteRepository

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentStore, DocumentWrite
    from typing import Iterator, List


class DocumentBatchWriteRepository(BatchWriteRepository):
    """Apply groups of document writes through the store's atomic batch write."""

    def __init__(self, store, limit):
        # type: (DocumentStore, int) -> None
        self._logger = logging.getLogger(__name__)
        self.store = store
        self.limit = limit

    def batches(self, writes):
        # type: (List[DocumentWrite]) -> Iterator[List[DocumentWrite]]
        """Split writes into groups no larger than the backend accepts in one batch."""
        for start in range(0, len(writes), self.limit):
            yield writes[start : start + self.limit]

    def commit(self, batch):
        # type: (List[DocumentWrite]) -> None
        if len(batch) > self.limit:
            raise ValueError(f"Batch of {len(batch)} writes exceeds the limit of {self.limit}")
        self._logger.debug("Committing batch of %d document writes", len(batch))
        self.store.batch_write(batch)
