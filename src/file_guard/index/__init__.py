"""Index model, storage, and file fingerprinting package."""

from .discovery import fingerprint_file, file_mtime, retrieve_file_paths, sha256_file
from .models import FileEntry, Index
from .store import (
    INDEX_FILE_NAME,
    IndexCorruptError,
    IndexMissingError,
    IndexSet,
    decode_index,
    encode_index,
    load_index,
    save_index,
)

__all__ = [
    "FileEntry",
    "INDEX_FILE_NAME",
    "Index",
    "IndexCorruptError",
    "IndexMissingError",
    "IndexSet",
    "decode_index",
    "encode_index",
    "file_mtime",
    "fingerprint_file",
    "load_index",
    "retrieve_file_paths",
    "save_index",
    "sha256_file",
]
