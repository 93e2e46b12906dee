"""Tests for structural pattern detection."""

import pytest

from code_token_index.config import merge_config
from code_token_index.detector import detect_structures
from code_token_index.models import CodeBlock, FunctionLocation, RouteDefinition
from code_token_index.parsers import DetectorRegistry, TypeScriptDetector


@pytest.fixture
def detector():
    return TypeScriptDetector()


def detect(source, detector, file_path="src/app.ts"):
    return detect_structures(source.split("\n"), detector, file_path)


class TestTypeScriptDetector:
    """Tests for line-local matching."""

    def test_registered_for_js_and_ts(self):
        extensions = DetectorRegistry.list_extensions()

        for ext in (".ts", ".tsx", ".js", ".jsx"):
            assert extensions[ext] == "typescript"
        assert "typescript" in DetectorRegistry.list_languages()

    def test_detect_is_repeatable(self, detector):
        line = "function a() {} function b(x) {}"

        assert detector.detect(line) == detector.detect(line)
        assert [m.name for m in detector.detect(line)] == ["a", "b"]

    def test_kind_order_on_one_line(self, detector):
        line = "import x from 'y'; function f() {}"

        assert [m.kind for m in detector.detect(line)] == ["function", "import"]

    def test_arrow_function_signature(self, detector):
        (match,) = detector.detect("const fetchUser = async (id, opts) => {")

        assert match.kind == "function"
        assert match.name == "fetchUser"
        assert match.signature == "id, opts"

    def test_router_receiver_not_matched_by_default(self, detector):
        assert detector.detect("router.get('/login', login);") == []

    def test_configured_receivers(self):
        detector = TypeScriptDetector()
        detector.configure(merge_config({"routes": {"receivers": ["app", "router"]}}))

        (match,) = detector.detect("router.post('/login', login);")
        assert (match.kind, match.method, match.path) == ("route", "post", "/login")

    def test_unknown_method_not_a_route(self, detector):
        assert detector.detect("app.head('/x', h);") == []

    def test_registry_creates_fresh_detectors(self):
        config = merge_config({"routes": {"receivers": ["router"]}})

        first = DetectorRegistry.create_detector("typescript", config)
        second = DetectorRegistry.create_detector("typescript")

        assert first is not second
        assert first.receivers == ["router"]
        assert second.receivers == ["app"]

    def test_registry_unknown_language(self):
        assert DetectorRegistry.create_detector("cobol") is None

    def test_language_for_extension(self, tmp_path):
        assert DetectorRegistry.language_for(tmp_path / "App.TSX") == "typescript"
        assert DetectorRegistry.language_for(tmp_path / "notes.md") is None

    def test_matches_carry_no_column(self, detector):
        (match,) = detector.detect("function f() {}")

        assert not hasattr(match, "column")


class TestDetectStructures:
    """Tests for turning matches into records."""

    def test_function_declaration(self, detector):
        result = detect("function add(a, b) {\n  return a + b;\n}", detector)

        assert result.function_locations == [
            FunctionLocation(name="add", start_line=1, end_line=3, signature="a, b")
        ]
        (block,) = result.code_blocks
        assert block.type == "function"
        assert block.content == "function add(a, b) {\n  return a + b;\n}"
        assert block.file == "src/app.ts"

    def test_route_registration(self, detector):
        result = detect("app.get('/users', handler)", detector)

        assert result.route_definitions == [
            RouteDefinition(path="/users", method="get", handler_name="handler", line_number=1)
        ]
        (block,) = result.code_blocks
        assert block == CodeBlock(
            type="route",
            name="get /users",
            start_line=1,
            end_line=1,
            content="app.get('/users', handler)",
            file="src/app.ts",
            path="/users",
            method="get",
        )

    def test_route_with_inline_handler_spans_body(self, detector):
        source = "app.post(\"/items\", (req, res) => {\n  res.json([]);\n});\nnext();"
        result = detect(source, detector)

        (route,) = result.route_definitions
        assert route.method == "post"
        assert route.handler_name == "handler"
        (block,) = [b for b in result.code_blocks if b.type == "route"]
        assert (block.start_line, block.end_line) == (1, 3)

    def test_import_is_single_line(self, detector):
        result = detect("import express from 'express';\nfunction x() {\n}", detector)

        imports = [b for b in result.code_blocks if b.type == "import"]
        assert [(b.name, b.start_line, b.end_line) for b in imports] == [("express", 1, 1)]
        assert imports[0].content == "import express from 'express';"

    def test_several_imports_on_one_line(self, detector):
        result = detect("import a from './a'; import { b } from \"./b\";", detector)

        assert [b.name for b in result.code_blocks] == ["./a", "./b"]

    def test_class_spans_body(self, detector):
        result = detect("export class UserStore {\n  users = [];\n}\n", detector)

        (block,) = result.code_blocks
        assert (block.type, block.name, block.start_line, block.end_line) == ("class", "UserStore", 1, 3)
        assert not block.is_degenerate

    def test_unterminated_class_is_degenerate(self, detector):
        result = detect("// model\nclass Foo {\n  bar = 1;", detector)

        (block,) = result.code_blocks
        assert (block.type, block.start_line, block.end_line) == ("class", 2, 2)
        assert block.content == "class Foo {"
        assert block.is_degenerate

    def test_interface(self, detector):
        result = detect("interface User {\n  id: string;\n}", detector)

        (block,) = result.code_blocks
        assert (block.type, block.name, block.end_line) == ("interface", "User", 3)

    def test_middleware_registration(self, detector):
        result = detect("app.use( cors );\napp.use('/api/auth', authRoutes);", detector)

        names = [b.name for b in result.code_blocks]
        assert names == ["cors", "'/api/auth', authRoutes"]
        assert all(b.type == "middleware" and b.start_line == b.end_line for b in result.code_blocks)

    def test_middleware_argument_stops_at_first_paren(self, detector):
        """Arguments are cut at the first closing parenthesis."""
        (block,) = detect("app.use(express.json());", detector).code_blocks

        assert block.name == "express.json("

    def test_line_matching_import_and_function(self, detector):
        result = detect("import a from 'a'; function go() { return a; }", detector)

        assert sorted(b.type for b in result.code_blocks) == ["function", "import"]
        assert result.function_locations[0].end_line == 1

    def test_function_without_body_is_degenerate(self, detector):
        result = detect("declare function f(x): void;", detector)

        (location,) = result.function_locations
        assert (location.start_line, location.end_line) == (1, 1)
        assert result.code_blocks[0].is_degenerate

    def test_records_follow_line_order(self, detector):
        source = "class A {\n}\nfunction b() {\n}\ninterface C {\n}"
        result = detect(source, detector)

        assert [b.start_line for b in result.code_blocks] == [1, 3, 5]
