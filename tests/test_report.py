"""Tests for the markdown report and JSON serialization."""

import json

import pytest

from code_token_index.errors import SerializationError
from code_token_index.models import CodebaseIndex
from code_token_index.report import ReportRenderer, deserialize, render, serialize, write_artifacts
from code_token_index.scanner import build_index

from conftest import write_tree


@pytest.fixture
def index(sample_project):
    return build_index(sample_project)


@pytest.fixture
def report(index, sample_project):
    return render(index, base=sample_project)


class TestRender:
    """Tests for the markdown report."""

    def test_title(self, report):
        assert report.startswith("# Codebase Structure\n")

    def test_section_order(self, report):
        headings = [
            "## Files",
            "## Routes",
            "## Functions",
            "## Components",
            "## Classes",
            "## Interfaces",
            "## Middlewares",
            "## File Contents",
            "## Code Blocks",
        ]
        positions = [report.index(h) for h in headings]

        assert positions == sorted(positions)

    def test_files_listing(self, report):
        assert "- src/components/Button.tsx (4 lines)" in report
        assert "- src/server.ts (18 lines)" in report
        assert "node_modules" not in report

    def test_route_listing(self, report):
        assert "- GET / - Defined in src/server.ts:9" in report
        assert "  - Method: GET, Path: /" in report

    def test_function_listing(self, report):
        assert "- add - src/server.ts:13-15" in report
        assert "- Button - src/components/Button.tsx:1-3" in report

    def test_component_listing(self, report):
        assert "- Button - src/components/Button.tsx\n" in report

    def test_type_listings(self, report):
        assert "- User - src/types.ts:1-4" in report
        assert "- UserStore - src/types.ts:6-8" in report
        assert "- '/api/auth', authRoutes - src/server.ts:7-7" in report

    def test_imports_not_listed_separately(self, report):
        assert "## Imports" not in report
        assert "### import: express (src/server.ts:1-1)" in report

    def test_file_contents_are_numbered(self, report):
        section = report[report.index("### src/server.ts"):]

        assert "1: import express from 'express';" in section
        assert "13: function add(a, b) {" in section

    def test_code_blocks_are_fenced_by_language(self, report):
        assert "### function: add (src/server.ts:13-15)\n\n```typescript\nfunction add(a, b) {" in report
        assert "### function: Button (src/components/Button.tsx:1-3)\n\n```tsx\n" in report

    def test_no_components_section_when_empty(self, tmp_path):
        write_tree(tmp_path, {"a.ts": "function f() {\n}\n"})

        report = render(build_index(tmp_path), base=tmp_path)

        assert "## Components" not in report
        assert "## Routes" in report

    def test_paths_relative_to_cwd_by_default(self, index, sample_project, monkeypatch):
        monkeypatch.chdir(sample_project / "src")

        report = render(index)

        assert "- server.ts (18 lines)" in report

    def test_render_does_not_read_disk(self, index, sample_project, report):
        (sample_project / "src" / "server.ts").write_text("changed\n", encoding="utf-8")

        assert render(index, base=sample_project) == report

    def test_broken_custom_template(self, index, tmp_path):
        template_dir = tmp_path / "templates"
        template_dir.mkdir()
        (template_dir / "report.md.j2").write_text("{% if %}", encoding="utf-8")

        with pytest.raises(SerializationError):
            ReportRenderer(template_dir=template_dir).render(index)

    def test_custom_section_override(self, index, sample_project, tmp_path):
        sections = tmp_path / "templates" / "sections"
        sections.mkdir(parents=True)
        (sections / "files.md.j2").write_text("## Files\n\n{{ files | length }} files\n\n", encoding="utf-8")

        report = ReportRenderer(base=sample_project, template_dir=tmp_path / "templates").render(index)

        assert "3 files" in report
        assert "## Code Blocks" in report


class TestSerialization:
    """Tests for serialize() and deserialize()."""

    def test_round_trip(self, index):
        assert deserialize(serialize(index)) == index

    def test_json_shape(self, index):
        data = json.loads(serialize(index))

        assert set(data) == {"files", "component_map", "route_map", "blocks_by_type"}
        assert data["route_map"]["/"]["method"] == "get"
        assert data["files"][0]["tokens"][0]["value"] == "const"

    def test_compact_output(self, index):
        assert "\n" not in serialize(index, indent=None).replace("\\n", "")

    def test_unserializable_value(self):
        index = CodebaseIndex(component_map={"Widget": object()})

        with pytest.raises(SerializationError):
            serialize(index)

    @pytest.mark.parametrize("payload", ["not json", "[]", '{"files": [{}]}'])
    def test_invalid_payload(self, payload):
        with pytest.raises(SerializationError):
            deserialize(payload)


class TestWriteArtifacts:
    """Tests for write_artifacts()."""

    def test_writes_both_files(self, index, sample_project):
        output_dir = sample_project / "out" / "nested"

        markdown_path, json_path = write_artifacts(index, output_dir, base=sample_project)

        assert markdown_path == output_dir / "codebase-index.md"
        assert json_path == output_dir / "codebase-index.json"
        assert markdown_path.read_text(encoding="utf-8") == render(index, base=sample_project)
        assert deserialize(json_path.read_text(encoding="utf-8")) == index

    def test_custom_names(self, index, tmp_path):
        markdown_path, json_path = write_artifacts(index, tmp_path, "report.md", "index.json")

        assert markdown_path.name == "report.md"
        assert json_path.name == "index.json"
