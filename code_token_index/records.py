"""
Addressable records and an in-memory vector store for similarity search.

Every token and block of a TokenizedFile becomes an IndexRecord with a
stable id (``<filePath>-token-<i>`` / ``<filePath>-block-<i>``). The
VectorStore is an explicit handle: the caller constructs it, connects it,
passes it where needed and closes it.

Embedding with sentence-transformers requires the ``semantic`` extra:
  pip install code-token-index[semantic]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Protocol

import numpy as np

from code_token_index.config import DEFAULT_CONFIG

if TYPE_CHECKING:
    from typing import Any

    from code_token_index.models import CodebaseIndex, TokenizedFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexRecord:
    """One independently addressable token or block."""
    id: str
    file_path: str
    kind: str  # "token" or "block"
    text: str
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


def token_record_id(file_path: str, position: int) -> str:
    return f"{file_path}-token-{position}"


def block_record_id(file_path: str, position: int) -> str:
    return f"{file_path}-block-{position}"


def iter_records(
    tokenized: TokenizedFile,
    skip_whitespace: bool = False,
) -> Iterator[IndexRecord]:
    """
    Yield a file's tokens, then its blocks, as records.

    Record ids use each item's position in the file's full token or block
    sequence, so they stay the same when whitespace tokens are skipped.

    Args:
        tokenized: The file to expose.
        skip_whitespace: Leave out whitespace and newline tokens.
    """
    for position, token in enumerate(tokenized.tokens):
        if skip_whitespace and not token.value.strip():
            continue
        yield IndexRecord(
            id=token_record_id(tokenized.file_path, position),
            file_path=tokenized.file_path,
            kind="token",
            text=token.value,
            metadata={
                "line_number": token.line_number,
                "column_start": token.column_start,
                "column_end": token.column_end,
                "context": token.context,
            },
        )

    for position, block in enumerate(tokenized.code_blocks):
        yield IndexRecord(
            id=block_record_id(tokenized.file_path, position),
            file_path=tokenized.file_path,
            kind="block",
            text=block.content,
            metadata={
                "type": block.type,
                "name": block.name,
                "start_line": block.start_line,
                "end_line": block.end_line,
            },
        )


def iter_index_records(index: CodebaseIndex, skip_whitespace: bool = False) -> Iterator[IndexRecord]:
    """Yield records for every file in an index, in scan order."""
    for tokenized in index.files:
        yield from iter_records(tokenized, skip_whitespace=skip_whitespace)


class Embedder(Protocol):
    """Anything that turns texts into a 2-D array of vectors."""

    def encode(self, texts: list[str]) -> Any:
        ...


class SentenceTransformerEmbedder:
    """Embedder backed by a sentence-transformers model, loaded on first use."""

    def __init__(self, model_name: str | None = None, cache_dir: str | None = None) -> None:
        self.model_name = model_name or DEFAULT_CONFIG["semantic"]["model"]
        self.cache_dir = cache_dir
        self._model: Any = None

    @property
    def model(self) -> Any:
        """Lazy-load the embedding model."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s", self.model_name)
            self._model = SentenceTransformer(self.model_name, cache_folder=self.cache_dir)
        return self._model

    def encode(self, texts: list[str]) -> Any:
        return self.model.encode(texts, convert_to_numpy=True, show_progress_bar=False)


@dataclass(frozen=True)
class SearchHit:
    record: IndexRecord
    score: float


class VectorStore:
    """
    In-memory vector index of IndexRecords.

    Usage:
        with VectorStore(embedder) as store:
            store.upsert(iter_index_records(index))
            hits = store.search("user login route", top_k=5)
    """

    def __init__(self, embedder: Embedder, batch_size: int = 256) -> None:
        """
        Initialize an unconnected store.

        Args:
            embedder: Turns record texts and queries into vectors.
            batch_size: Number of texts embedded per call.
        """
        self.embedder = embedder
        self.batch_size = batch_size
        self._connected = False
        self._records: list[IndexRecord] = []
        self._vectors: list[np.ndarray] = []
        self._positions: dict[str, int] = {}

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> "VectorStore":
        """Open the store. Connecting twice is a no-op."""
        if not self._connected:
            self._connected = True
            logger.debug("Vector store connected")
        return self

    def close(self) -> None:
        """Release all stored records and vectors."""
        self._records = []
        self._vectors = []
        self._positions = {}
        self._connected = False
        logger.debug("Vector store closed")

    def __enter__(self) -> "VectorStore":
        return self.connect()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._records)

    def _require_connection(self) -> None:
        if not self._connected:
            raise RuntimeError("Vector store is not connected")

    def upsert(self, records: Iterable[IndexRecord]) -> int:
        """
        Embed and store records, replacing any with the same id.

        Returns:
            Number of records written.
        """
        self._require_connection()
        pending = list(records)

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            vectors = np.asarray(self.embedder.encode([r.text for r in batch]), dtype=float)
            for record, vector in zip(batch, vectors):
                position = self._positions.get(record.id)
                if position is None:
                    self._positions[record.id] = len(self._records)
                    self._records.append(record)
                    self._vectors.append(vector)
                else:
                    self._records[position] = record
                    self._vectors[position] = vector

        logger.debug("Upserted %d records (%d total)", len(pending), len(self._records))
        return len(pending)

    def get(self, record_id: str) -> IndexRecord | None:
        """Look up a record by id."""
        self._require_connection()
        position = self._positions.get(record_id)
        return None if position is None else self._records[position]

    def delete_file(self, file_path: str) -> int:
        """
        Remove every record belonging to a file.

        Returns:
            Number of records removed.
        """
        self._require_connection()
        kept = [
            (record, vector)
            for record, vector in zip(self._records, self._vectors)
            if record.file_path != file_path
        ]
        removed = len(self._records) - len(kept)
        self._records = [record for record, _ in kept]
        self._vectors = [vector for _, vector in kept]
        self._positions = {record.id: i for i, record in enumerate(self._records)}
        return removed

    def search(
        self,
        query: str,
        top_k: int = 10,
        kind: Optional[str] = None,
        file_path: Optional[str] = None,
        min_score: float = 0.0,
    ) -> list[SearchHit]:
        """
        Find the records most similar to a query.

        Args:
            query: Free text to embed and compare.
            top_k: Maximum number of hits.
            kind: Only consider "token" or "block" records.
            file_path: Only consider records from this file.
            min_score: Minimum cosine similarity.

        Returns:
            Hits ordered by descending similarity.
        """
        self._require_connection()
        candidates = [
            i for i, record in enumerate(self._records)
            if (kind is None or record.kind == kind)
            and (file_path is None or record.file_path == file_path)
        ]
        if not candidates:
            return []

        query_vector = np.asarray(self.embedder.encode([query]), dtype=float)[0]
        matrix = np.vstack([self._vectors[i] for i in candidates])
        similarities = self._cosine_similarity(query_vector, matrix)

        hits = []
        for idx in np.argsort(similarities)[::-1][:top_k]:
            score = float(similarities[idx])
            if score < min_score:
                break
            hits.append(SearchHit(record=self._records[candidates[idx]], score=score))
        return hits

    @staticmethod
    def _cosine_similarity(query: np.ndarray, embeddings: np.ndarray) -> np.ndarray:
        """Compute cosine similarity between query and all embeddings."""
        query_norm = query / (np.linalg.norm(query) + 1e-9)
        norms = np.linalg.norm(embeddings, axis=1, keepdims=True) + 1e-9
        return np.dot(embeddings / norms, query_norm)
