"""
Query helpers for serving the index: file status, free-text questions,
similarity search.

IndexService is what an HTTP layer would hold. It builds the index lazily,
rebuilds it wholesale on refresh(), and turns scan or report failures into
a generic ServiceError that maps onto a 5xx response.

Free-text questions are answered by sending a bounded prefix of the
markdown report plus the question to an OpenAI-compatible completion
endpoint.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from code_token_index.config import DEFAULT_CONFIG
from code_token_index.errors import IndexIOError, SerializationError
from code_token_index.records import iter_index_records
from code_token_index.report import ReportRenderer
from code_token_index.scanner import build_index

if TYPE_CHECKING:
    from typing import Any

    from code_token_index.models import CodebaseIndex, TokenizedFile
    from code_token_index.records import SearchHit, VectorStore

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """You are answering questions about a codebase.
Below is an index of the codebase, possibly truncated.

{report}

Question: {question}
"""


class ServiceError(Exception):
    """A failure to surface to clients with an HTTP-style status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def file_status(tokenized: TokenizedFile) -> dict[str, Any]:
    """
    Summary statistics for one indexed file.

    Returns:
        Dict with path, line/token counts, function/route/block counts and
        block counts per type.
    """
    return {
        "file": tokenized.file_path,
        "line_count": tokenized.line_count,
        "token_count": len(tokenized.tokens),
        "function_count": len(tokenized.function_locations),
        "route_count": len(tokenized.route_definitions),
        "block_count": len(tokenized.code_blocks),
        "blocks_by_type": dict(Counter(block.type for block in tokenized.code_blocks)),
    }


def build_prompt(report: str, question: str, max_chars: int) -> str:
    """Combine the first ``max_chars`` characters of the report with a question."""
    return PROMPT_TEMPLATE.format(report=report[:max_chars], question=question.strip())


class CompletionClient:
    """
    Client for an OpenAI-compatible chat-completions endpoint.

    Owns an httpx.Client; call close() or use it as a context manager.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: API key sent as a bearer token.
            base_url: Endpoint base URL (".../v1").
            model: Model name.
            temperature: Sampling temperature.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used in tests).
        """
        defaults = DEFAULT_CONFIG["llm"]
        self.base_url = (base_url or defaults["base_url"]).rstrip("/")
        self.model = model or defaults["model"]
        self.temperature = defaults["temperature"] if temperature is None else temperature

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.Client(
            timeout=timeout or defaults["timeout"],
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "CompletionClient":
        """
        Build a client from the ``llm`` config section.

        Raises:
            ValueError: If the API key environment variable is not set.
        """
        llm_config = {**DEFAULT_CONFIG["llm"], **(config.get("llm") or {})}
        api_key = os.environ.get(llm_config["api_key_env"])
        if not api_key:
            raise ValueError(f"{llm_config['api_key_env']} environment variable is required.")

        return cls(
            api_key=api_key,
            base_url=llm_config["base_url"],
            model=llm_config["model"],
            temperature=llm_config["temperature"],
            timeout=llm_config["timeout"],
        )

    def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the completion text.

        Raises:
            httpx.HTTPError: On transport failures or error responses.
        """
        response = self._client.post(
            f"{self.base_url}/chat/completions",
            json={
                "model": self.model,
                "temperature": self.temperature,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"].strip()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "CompletionClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class IndexService:
    """Lazily built index with status and question answering on top."""

    def __init__(self, root: Path | str, config: dict[str, Any] | None = None) -> None:
        """
        Initialize the service. Nothing is scanned until first use.

        Args:
            root: Directory to index.
            config: Configuration dictionary (defaults when omitted).
        """
        self.root = Path(root).absolute()
        self.config = config or DEFAULT_CONFIG
        self._index: CodebaseIndex | None = None
        self._report: str | None = None

    @property
    def index(self) -> CodebaseIndex:
        """The current index, built on first access."""
        if self._index is None:
            self.refresh()
        assert self._index is not None
        return self._index

    def refresh(self) -> CodebaseIndex:
        """
        Rebuild the index from scratch, replacing the previous one.

        Raises:
            ServiceError: 500 if the scan fails.
        """
        try:
            index = build_index(self.root, self.config)
        except (IndexIOError, ValueError) as e:
            logger.error("Index build failed for %s: %s", self.root, e)
            raise ServiceError(500, "Failed to build codebase index") from e

        self._index = index
        self._report = None
        return index

    def report(self) -> str:
        """
        The markdown report for the current index, rendered once per build.

        Raises:
            ServiceError: 500 if the report can't be rendered.
        """
        if self._report is None:
            try:
                template_dir = (self.config.get("report") or {}).get("template_dir")
                renderer = ReportRenderer(base=self.root, template_dir=template_dir)
                self._report = renderer.render(self.index)
            except SerializationError as e:
                logger.error("Report rendering failed: %s", e)
                raise ServiceError(500, "Failed to render codebase index") from e
        return self._report

    def find_file(self, file_path: str) -> TokenizedFile | None:
        """Find an indexed file by absolute path or path relative to the root."""
        candidate = Path(file_path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return self.index.get_file(str(candidate))

    def status(self, file_path: str) -> dict[str, Any]:
        """
        Summary statistics for one file.

        Raises:
            ServiceError: 404 if the file is not in the index, 500 if the
                index can't be built.
        """
        tokenized = self.find_file(file_path)
        if tokenized is None:
            raise ServiceError(404, f"File not indexed: {file_path}")
        return file_status(tokenized)

    def ask(self, question: str, client: CompletionClient) -> str:
        """
        Answer a free-text question using the report as context.

        Raises:
            ServiceError: 400 for an empty question, 500 if the index or
                report can't be built, 502 if the completion call fails.
        """
        if not question.strip():
            raise ServiceError(400, "Question must not be empty")

        max_chars = (self.config.get("report") or {}).get(
            "prompt_chars", DEFAULT_CONFIG["report"]["prompt_chars"]
        )
        prompt = build_prompt(self.report(), question, max_chars)

        try:
            return client.complete(prompt)
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            logger.error("Completion request failed: %s", e)
            raise ServiceError(502, "Completion service unavailable") from e

    def load_records(self, store: VectorStore) -> int:
        """
        Fill a vector store with the current index's records.

        Records of every indexed file are replaced, so calling this again
        after refresh() brings the store up to date.

        Returns:
            Number of records written.

        Raises:
            ServiceError: 500 if the index can't be built, 503 if the
                embedding model can't be loaded.
        """
        kind = self._semantic_config()["kind"]
        index = self.index

        for tokenized in index.files:
            store.delete_file(tokenized.file_path)
        records = (
            record
            for record in iter_index_records(index, skip_whitespace=True)
            if kind is None or record.kind == kind
        )

        try:
            return store.upsert(records)
        except (ImportError, OSError) as e:
            logger.error("Embedding failed: %s", e)
            raise ServiceError(503, "Embedding model unavailable") from e

    def search(
        self,
        query: str,
        store: VectorStore,
        top_k: int | None = None,
    ) -> list[SearchHit]:
        """
        Find the indexed tokens or blocks most similar to a query.

        An empty store is filled from the current index first.

        Raises:
            ServiceError: 400 for an empty query, 500 if the index can't be
                built, 503 if the embedding model can't be loaded.
        """
        if not query.strip():
            raise ServiceError(400, "Query must not be empty")

        semantic = self._semantic_config()
        if len(store) == 0:
            self.load_records(store)

        try:
            return store.search(
                query,
                top_k=top_k or semantic["top_k"],
                kind=semantic["kind"],
            )
        except (ImportError, OSError) as e:
            logger.error("Embedding failed: %s", e)
            raise ServiceError(503, "Embedding model unavailable") from e

    def _semantic_config(self) -> dict[str, Any]:
        return {**DEFAULT_CONFIG["semantic"], **(self.config.get("semantic") or {})}
