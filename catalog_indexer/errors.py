from typing import Any, Optional


class CatalogIndexerError(Exception):
    """Base class for every error raised by catalog_indexer."""


class ConfigurationError(CatalogIndexerError):
    """Ruleset, code table or index mapping could not be loaded. Fatal."""


class RecordMappingError(CatalogIndexerError):
    def __init__(self, message: str, identifier: Optional[str] = None) -> None:
        super().__init__(message)
        self.identifier = identifier


class MissingTitleError(RecordMappingError):
    pass


class FieldExtractionError(RecordMappingError):
    pass


class DecodeAbortError(CatalogIndexerError):
    def __init__(self, message: str, consecutive: int, indexed: int = 0) -> None:
        super().__init__(message)
        self.consecutive = consecutive
        # Documents the consumer confirmed before the abort surfaced.
        self.indexed = indexed


class QueueClosed(CatalogIndexerError):
    pass


class SearchEngineError(CatalogIndexerError):
    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        retryable: bool = False,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable
        self.detail = detail


class IndexNotFoundError(SearchEngineError):
    def __init__(self, index_name: str) -> None:
        super().__init__(f"Index {index_name} does not exist", status=404)
        self.index_name = index_name


class BulkIndexError(SearchEngineError):
    def __init__(self, message: str, indexed: int, status: Optional[int] = None, detail: Any = None) -> None:
        super().__init__(message, status=status, retryable=False, detail=detail)
        self.indexed = indexed
