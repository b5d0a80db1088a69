"""Error taxonomy for the swatch catalog sync engine."""


class SyncError(Exception):
    """Base exception for catalog sync errors."""

    pass


class FetchFailed(SyncError):
    """A catalog page could not be retrieved. Aborts the whole pass."""

    def __init__(self, url: str, page_index: int, reason: str):
        self.url = url
        self.page_index = page_index
        self.reason = reason
        super().__init__(f"Fetching page {page_index} ({url}) failed: {reason}")


class MappingFailed(SyncError):
    """A single remote record is malformed. Only that record is skipped."""

    def __init__(self, field: str, record_id=None, reason: str = "missing or invalid"):
        self.field = field
        self.record_id = record_id
        super().__init__(f"Record {record_id if record_id is not None else '?'}: {field} is {reason}")


class ReconciliationFailed(SyncError):
    """A mapped record could not be written. Rolls back the whole pass."""

    def __init__(self, swatch_id: int, reason: str):
        self.swatch_id = swatch_id
        self.reason = reason
        super().__init__(f"Reconciling swatch {swatch_id} failed: {reason}")


class TransactionFailed(SyncError):
    """The pass transaction could not be committed."""

    pass


class PassCancelled(SyncError):
    """The catalog walk was told to stop between pages. Nothing is written."""

    def __init__(self, pages_fetched: int):
        self.pages_fetched = pages_fetched
        super().__init__(f"Pass aborted after {pages_fetched} pages")
