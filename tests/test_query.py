"""Tests for file status, the index service and the completion client."""

import json

import httpx
import pytest

from code_token_index.config import merge_config
from code_token_index.indexer import index_file
from code_token_index.query import (
    CompletionClient,
    IndexService,
    ServiceError,
    build_prompt,
    file_status,
)
from code_token_index.records import VectorStore

from conftest import SERVER_TS, write_tree


def completion_transport(answer="It is in server.ts", status=200, seen=None):
    """Mock transport that answers every chat-completions request."""
    def handler(request):
        if seen is not None:
            seen.append(request)
        if status != 200:
            return httpx.Response(status, json={"error": {"message": "boom"}})
        return httpx.Response(200, json={
            "choices": [{"message": {"role": "assistant", "content": f"  {answer}\n"}}],
        })
    return httpx.MockTransport(handler)


class TestFileStatus:
    """Tests for file_status()."""

    def test_counts(self, tmp_path):
        paths = write_tree(tmp_path, {"server.ts": SERVER_TS})
        tokenized = index_file(paths["server.ts"])

        status = file_status(tokenized)

        assert status["file"] == str(paths["server.ts"])
        assert status["line_count"] == 18
        assert status["token_count"] == len(tokenized.tokens)
        assert status["function_count"] == 1
        assert status["route_count"] == 1
        assert status["block_count"] == 6
        assert status["blocks_by_type"] == {"import": 2, "middleware": 2, "route": 1, "function": 1}


class TestBuildPrompt:
    """Tests for build_prompt()."""

    def test_report_is_truncated(self):
        prompt = build_prompt("x" * 50, "  Where?  ", max_chars=10)

        assert "x" * 10 in prompt
        assert "x" * 11 not in prompt
        assert prompt.rstrip().endswith("Question: Where?")


class TestIndexService:
    """Tests for IndexService."""

    def test_index_is_built_lazily(self, sample_project, monkeypatch):
        calls = []
        import code_token_index.query as query

        real_build = query.build_index

        def counting_build(root, config):
            calls.append(root)
            return real_build(root, config)

        monkeypatch.setattr(query, "build_index", counting_build)
        service = IndexService(sample_project)

        assert calls == []
        service.index
        service.index
        assert len(calls) == 1

    def test_refresh_replaces_index(self, sample_project):
        service = IndexService(sample_project)
        first = service.index
        write_tree(sample_project, {"src/extra.ts": "function extra() {\n}\n"})

        second = service.refresh()

        assert service.index is second
        assert len(second.files) == len(first.files) + 1

    def test_refresh_drops_cached_report(self, sample_project):
        service = IndexService(sample_project)
        before = service.report()
        write_tree(sample_project, {"src/extra.ts": "function extra() {\n}\n"})

        service.refresh()

        assert service.report() != before
        assert "- extra - src/extra.ts:1-2" in service.report()

    def test_status_by_relative_path(self, sample_project):
        service = IndexService(sample_project)

        status = service.status("src/types.ts")

        assert status["blocks_by_type"] == {"interface": 1, "class": 1}

    def test_status_for_unknown_file(self, sample_project):
        service = IndexService(sample_project)

        with pytest.raises(ServiceError) as exc_info:
            service.status("src/missing.ts")

        assert exc_info.value.status == 404

    def test_scan_failure_is_generic_500(self, tmp_path):
        (tmp_path / "bad.ts").write_bytes(b"\xff\n")
        service = IndexService(tmp_path)

        with pytest.raises(ServiceError) as exc_info:
            service.index

        assert exc_info.value.status == 500
        assert exc_info.value.message == "Failed to build codebase index"
        assert "bad.ts" not in exc_info.value.message

    def test_missing_root_is_500(self, tmp_path):
        service = IndexService(tmp_path / "missing")

        with pytest.raises(ServiceError) as exc_info:
            service.status("a.ts")

        assert exc_info.value.status == 500

    def test_ask_sends_report_and_question(self, sample_project):
        seen = []
        service = IndexService(sample_project)
        client = CompletionClient(api_key="sk-test", transport=completion_transport(seen=seen))

        with client:
            answer = service.ask("Where is add defined?", client)

        assert answer == "It is in server.ts"
        (request,) = seen
        assert request.url.path.endswith("/chat/completions")
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        prompt = body["messages"][0]["content"]
        assert "# Codebase Structure" in prompt
        assert prompt.rstrip().endswith("Question: Where is add defined?")

    def test_ask_bounds_report_length(self, sample_project):
        seen = []
        config = merge_config({"report": {"prompt_chars": 20}})
        service = IndexService(sample_project, config)

        with CompletionClient(transport=completion_transport(seen=seen)) as client:
            service.ask("Anything?", client)

        prompt = json.loads(seen[0].content)["messages"][0]["content"]
        assert "## Files" not in prompt

    def test_ask_rejects_empty_question(self, sample_project):
        service = IndexService(sample_project)

        with CompletionClient(transport=completion_transport()) as client:
            with pytest.raises(ServiceError) as exc_info:
                service.ask("   ", client)

        assert exc_info.value.status == 400

    def test_ask_upstream_failure_is_502(self, sample_project):
        service = IndexService(sample_project)

        with CompletionClient(transport=completion_transport(status=503)) as client:
            with pytest.raises(ServiceError) as exc_info:
                service.ask("Where?", client)

        assert exc_info.value.status == 502


class TestCompletionClient:
    """Tests for CompletionClient configuration."""

    def test_from_config_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            CompletionClient.from_config(merge_config({}))

    def test_from_config_uses_llm_section(self, monkeypatch):
        monkeypatch.setenv("MY_KEY", "secret")
        config = merge_config({"llm": {"api_key_env": "MY_KEY", "base_url": "http://localhost:8000/v1/", "model": "local"}})

        client = CompletionClient.from_config(config)
        try:
            assert client.base_url == "http://localhost:8000/v1"
            assert client.model == "local"
        finally:
            client.close()


class MissingModelEmbedder:
    """Embedder whose model can't be loaded."""

    def encode(self, texts):
        raise ImportError("No module named 'sentence_transformers'")


class TestIndexServiceSearch:
    """Tests for IndexService.search() and load_records()."""

    def test_search_ranks_matching_block_first(self, sample_project, embedder):
        service = IndexService(sample_project)

        with VectorStore(embedder) as store:
            hits = service.search("add", store, top_k=3)

        assert hits[0].record.metadata["name"] == "add"
        assert hits[0].record.file_path.endswith("server.ts")
        assert len(hits) <= 3

    def test_only_blocks_by_default(self, sample_project, embedder):
        service = IndexService(sample_project)

        with VectorStore(embedder) as store:
            service.load_records(store)

            assert len(store) == sum(len(f.code_blocks) for f in service.index.files)

    def test_kind_none_loads_tokens_too(self, sample_project, embedder):
        service = IndexService(sample_project, merge_config({"semantic": {"kind": None}}))

        with VectorStore(embedder) as store:
            hits = service.search("user", store, top_k=50)

            assert {h.record.kind for h in hits} == {"token", "block"}

    def test_top_k_from_config(self, sample_project, embedder):
        service = IndexService(sample_project, merge_config({"semantic": {"top_k": 2}}))

        with VectorStore(embedder) as store:
            assert len(service.search("user", store)) == 2

    def test_store_is_filled_once(self, sample_project, embedder):
        service = IndexService(sample_project)

        with VectorStore(embedder) as store:
            service.search("add", store)
            loaded = embedder.calls
            service.search("user", store)

            assert embedder.calls == loaded + 1

    def test_load_records_after_refresh_replaces_records(self, sample_project, embedder):
        service = IndexService(sample_project)

        with VectorStore(embedder) as store:
            first = service.load_records(store)
            write_tree(sample_project, {"src/extra.ts": "function extra() {\n}\n"})
            service.refresh()
            second = service.load_records(store)

            assert second == first + 1
            assert len(store) == second
            assert service.search("add", store)[0].record.metadata["name"] == "add"

    def test_empty_query_is_400(self, sample_project, embedder):
        service = IndexService(sample_project)

        with VectorStore(embedder) as store:
            with pytest.raises(ServiceError) as exc_info:
                service.search("   ", store)

        assert exc_info.value.status == 400
        assert embedder.calls == 0

    def test_missing_model_is_503(self, sample_project):
        service = IndexService(sample_project)

        with VectorStore(MissingModelEmbedder()) as store:
            with pytest.raises(ServiceError) as exc_info:
                service.search("add", store)

        assert exc_info.value.status == 503
        assert isinstance(exc_info.value.__cause__, ImportError)
