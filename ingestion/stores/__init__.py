from ingestion.stores.base import CheckpointStore, RawPageStore
from ingestion.stores.files import FileCheckpointStore, FileRawPageStore

__all__ = [
    "CheckpointStore",
    "RawPageStore",
    "FileCheckpointStore",
    "FileRawPageStore",
]
