"""
Code Token Index - a lightweight lexical indexer for JavaScript/TypeScript codebases.

Tokenizes every source file into positioned tokens, detects functions,
routes, imports, classes, interfaces and middleware by line-local pattern
matching with brace-depth block resolution, and renders the result as a
markdown report plus a JSON index.
"""

__version__ = "1.0.0"

from code_token_index.config import DEFAULT_CONFIG, DEFAULT_EXCLUDE, DEFAULT_INCLUDE
from code_token_index.errors import IndexIOError, SerializationError
from code_token_index.models import CodebaseIndex, TokenizedFile
from code_token_index.records import IndexRecord, VectorStore, iter_index_records, iter_records
from code_token_index.report import render, serialize, deserialize
from code_token_index.scanner import CodebaseScanner, build_index

__all__ = [
    "CodebaseIndex",
    "CodebaseScanner",
    "DEFAULT_CONFIG",
    "DEFAULT_EXCLUDE",
    "DEFAULT_INCLUDE",
    "IndexRecord",
    "IndexIOError",
    "SerializationError",
    "TokenizedFile",
    "VectorStore",
    "build_index",
    "deserialize",
    "iter_index_records",
    "iter_records",
    "render",
    "serialize",
    "__version__",
]
