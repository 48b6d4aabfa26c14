# ==============================================
# STORAGE: Document store access
# ==============================================
#
# Modules:
# --------
# - base.py          → DocumentStore interface, Population, ValueCount
# - mongo_client.py  → MongoDB-backed store (pymongo)
# - memory_store.py  → In-process store over lists of dicts
#
# ==============================================

from .base import DocumentStore, Population, ValueCount, get_path
from .memory_store import MemoryStore
from .mongo_client import MongoStore

__all__ = [
    "DocumentStore",
    "MemoryStore",
    "MongoStore",
    "Population",
    "ValueCount",
    "get_path",
]
