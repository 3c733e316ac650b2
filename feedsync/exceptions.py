"""
Catalog Feed Sync - Custom Exceptions
Fatal error taxonomy for the feed-to-catalog pipeline.
"""


class CatalogSyncError(Exception):
    """Base exception for all Catalog Feed Sync errors."""

    # SyncSummary of the failed run, set by SyncOrchestrator.run()
    summary = None
    
    def __init__(self, message: str, context: dict = None):
        super().__init__(message)
        self.context = context or {}
    
    def __str__(self):
        base = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} [{context_str}]"
        return base


class ConfigurationError(CatalogSyncError):
    """Errors in configuration (missing feed URL, unreadable policy files)."""
    
    def __init__(self, message: str, setting: str = None):
        context = {"setting": setting} if setting else {}
        super().__init__(message, context)
        self.setting = setting


class FetchError(CatalogSyncError):
    """Feed download failed (non-2xx response or transport error)."""
    
    def __init__(self, message: str, status_code: int = None, url: str = None):
        context = {}
        if status_code:
            context["status"] = status_code
        if url:
            context["url"] = url
        super().__init__(message, context)
        self.status_code = status_code
        self.url = url


class ParseError(CatalogSyncError):
    """Feed document is malformed or lacks the expected structure."""
    
    def __init__(self, message: str, element: str = None):
        context = {"element": element} if element else {}
        super().__init__(message, context)
        self.element = element


class EmptyBatchError(CatalogSyncError):
    """
    Zero valid products after transformation.
    
    Raised after an apparently successful fetch/parse so an upstream
    outage can never wipe the live catalog.
    """
    
    def __init__(self, message: str, records_parsed: int = None):
        context = {"records": records_parsed} if records_parsed is not None else {}
        super().__init__(message, context)
        self.records_parsed = records_parsed


class StateError(CatalogSyncError):
    """Errors reading or writing the sync state / history / catalog files."""
    
    def __init__(self, message: str, path: str = None):
        context = {"path": path} if path else {}
        super().__init__(message, context)
        self.path = path
