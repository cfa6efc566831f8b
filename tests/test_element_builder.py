"""Tests for building content elements from parsed lines."""

import pytest
from PIL import Image

from mdr.blocks import classify
from mdr.builder import DIAGRAM, Resolvers, block_row_height, boxed_source, build_elements
from mdr.model import ElementKind, ParsedLine, Resolution, StyledLine
from mdr.resolvers import DiagramRenderer, ImageResolver, Rasterizer


class FakeImageResolver(ImageResolver):
    def __init__(self, result):
        self.result = result
        self.calls = []

    def resolve(self, ref):
        self.calls.append(ref)
        return self.result


class FakeRenderer(DiagramRenderer):
    def __init__(self, result=None):
        self.result = result or Resolution.success("<svg/>")
        self.calls = []

    def render(self, source):
        self.calls.append(source)
        return self.result


class FakeRasterizer(Rasterizer):
    def __init__(self, result):
        self.result = result

    def rasterize(self, svg):
        return self.result


class CrashingRenderer(DiagramRenderer):
    def render(self, source):
        raise RuntimeError("boom")


MERMAID_DOC = "```mermaid\ngraph TD\n  A-->B\n```\n"


@pytest.fixture
def wide_image():
    return Image.new("RGB", (600, 200))


@pytest.mark.parametrize("width,height,rows", [
    (600, 200, 10),    # 60 * 1/3 / 2 = 10
    (100, 100, 20),    # 30 rounds to the cap
    (1000, 10, 2),     # 0.3 raises to the floor
    (400, 100, 8),     # 7.5 rounds half up
])
def test_block_row_height(width, height, rows):
    assert block_row_height(width, height) == rows


def test_zero_sized_visual_has_no_height():
    assert block_row_height(0, 10) is None
    assert block_row_height(10, 0) is None


def test_styled_lines_become_text():
    elements = build_elements([ParsedLine.styled(StyledLine.plain("hi"))])
    assert [e.kind for e in elements] == [ElementKind.TEXT]
    assert elements[0].flattened_text() == "hi"


def test_image_without_capability_is_placeholder(wide_image):
    resolver = FakeImageResolver(Resolution.success(wide_image))
    elements = build_elements(classify("![alt](missing.png)"),
                              Resolvers(image_resolver=resolver, capability=None))
    assert len(elements) == 1
    assert elements[0].kind == ElementKind.PLACEHOLDER
    assert elements[0].flattened_text() == "[Image: alt]"
    assert resolver.calls == []


def test_failing_image_resolver_gives_placeholder():
    resolver = FakeImageResolver(Resolution.failure("not found"))
    elements = build_elements(classify("![alt](missing.png)"),
                              Resolvers(image_resolver=resolver, capability="kitty"))
    assert [e.kind for e in elements] == [ElementKind.PLACEHOLDER]
    assert elements[0].flattened_text() == "[Image: alt]"
    assert resolver.calls == ["missing.png"]


def test_resolved_image_becomes_block(wide_image):
    resolver = FakeImageResolver(Resolution.success(wide_image))
    elements = build_elements(classify("![alt](pic.png)"),
                              Resolvers(image_resolver=resolver, capability="blocks"))
    assert elements[0].kind == ElementKind.BLOCK
    assert elements[0].row_height == 10
    assert elements[0].visual is wide_image


def test_mermaid_with_renderer_and_capability_is_one_block(wide_image):
    resolvers = Resolvers(diagram_renderer=FakeRenderer(),
                          rasterizer=FakeRasterizer(Resolution.success(wide_image)),
                          capability="kitty")
    elements = build_elements(classify(MERMAID_DOC), resolvers)
    assert len(elements) == 1
    assert elements[0].kind == ElementKind.BLOCK


def test_mermaid_without_capability_is_boxed_source():
    renderer = FakeRenderer()
    elements = build_elements(classify(MERMAID_DOC), Resolvers(diagram_renderer=renderer))
    assert all(e.kind == ElementKind.TEXT for e in elements)
    lines = [e.flattened_text() for e in elements]
    assert lines[0].startswith("┌─ mermaid ")
    assert "│ graph TD" in lines
    assert "│   A-->B" in lines
    for element in elements:
        for run in element.line.runs:
            assert run.attributes.color_class != "code"
    assert renderer.calls == []


def test_rasterizer_failure_falls_back_to_boxed_source():
    resolvers = Resolvers(diagram_renderer=FakeRenderer(),
                          rasterizer=FakeRasterizer(Resolution.failure("bad svg")),
                          capability="iterm2")
    elements = build_elements(classify(MERMAID_DOC), resolvers)
    assert [e.flattened_text() for e in elements] == [e.flattened_text() for e in boxed_source("graph TD\n  A-->B")]


def test_crashing_collaborator_is_contained(wide_image):
    resolvers = Resolvers(diagram_renderer=CrashingRenderer(),
                          rasterizer=FakeRasterizer(Resolution.success(wide_image)),
                          capability="kitty")
    elements = build_elements(classify(MERMAID_DOC + "tail"), resolvers)
    assert elements[-1].flattened_text() == "tail"
    assert any(e.flattened_text() == "│ graph TD" for e in elements)


def test_boxed_source_rows_use_diagram_style():
    rows = boxed_source("a\nb")
    assert rows[1].line.runs[0].attributes == DIAGRAM
    assert rows[2].line.runs[0].attributes == DIAGRAM
