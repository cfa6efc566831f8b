"""Tests for heading extraction and anchors."""

from mdr.toc import extract_toc, slugify


def test_headings_in_order_with_levels():
    doc = "# One\ntext\n## Two\n### Three\n###### Six\n"
    toc = extract_toc(doc)
    assert [(e.level, e.text) for e in toc] == [(1, "One"), (2, "Two"), (3, "Three"), (6, "Six")]


def test_inline_markup_is_flattened():
    toc = extract_toc("## The `render` **step**")
    assert toc[0].text == "The render step"


def test_headings_inside_code_fences_are_ignored():
    toc = extract_toc("```\n# not a heading\n```\n# Real")
    assert [e.text for e in toc] == ["Real"]


def test_setext_heading():
    toc = extract_toc("Title\n=====\n")
    assert [(e.level, e.text) for e in toc] == [(1, "Title")]


def test_anchor_uses_slug():
    assert extract_toc("# Hello World")[0].anchor == "hello-world"


def test_slugify_rules():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("snake_case and-dash") == "snake_case-and-dash"
    assert slugify("") == ""


def test_no_headings():
    assert extract_toc("just text") == []
