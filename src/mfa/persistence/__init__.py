"""MFA Persistence Module.

Provides the analysis store boundary, its SQL and in-memory
implementations, and the debounced save scheduler.
"""

from mfa.persistence.db import (
    DatabaseConfigError,
    get_database_url,
    get_engine,
    is_database_configured,
    reset_engines,
)
from mfa.persistence.saver import DebouncedSaver
from mfa.persistence.store import (
    AnalysisNotFoundError,
    AnalysisStore,
    InMemoryAnalysisStore,
    SqlAnalysisStore,
    StoreError,
    clear_in_memory_store,
    get_analysis_store,
)

__all__ = [
    "AnalysisNotFoundError",
    "AnalysisStore",
    "DatabaseConfigError",
    "DebouncedSaver",
    "InMemoryAnalysisStore",
    "SqlAnalysisStore",
    "StoreError",
    "clear_in_memory_store",
    "get_analysis_store",
    "get_database_url",
    "get_engine",
    "is_database_configured",
    "reset_engines",
]
