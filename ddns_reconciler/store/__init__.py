"""
Desired-state record stores.
"""

from .base_store import RecordStore
from .sql_store import SQLRecordStore

__all__ = ["RecordStore", "SQLRecordStore"]
