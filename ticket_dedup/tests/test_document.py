"""
Unit tests for the rich-text document adapter

Tests:
- Visitor dispatch over the tagged tree
- Flattening text, links and list items
- File path and PR link extraction
"""
from ticket_dedup.services.document import (
    DocumentNode,
    DocumentVisitor,
    extract_file_paths,
    extract_pr_links,
    flatten_document,
    is_pr_link,
)


def paragraph(*nodes):
    return {"type": "paragraph", "content": list(nodes)}


def text(value, href=None):
    node = {"type": "text", "text": value}
    if href:
        node["marks"] = [{"type": "link", "attrs": {"href": href}}]
    return node


SAMPLE_DOC = {
    "type": "doc",
    "version": 1,
    "content": [
        paragraph(text("Login fails in "), text("src/auth/Login.cs")),
        paragraph(text("Fixed by "), text("PR 42", href="https://github.com/acme/web/pull/42")),
        {
            "type": "bulletList",
            "content": [
                {"type": "listItem", "content": [paragraph(text("Open the app"))]},
                {"type": "listItem", "content": [paragraph(text("Tap login"))]},
            ],
        },
        paragraph({"type": "inlineCard", "attrs": {"url": "https://acme.atlassian.net/browse/BUG-7"}}),
    ],
}


class TestFlattenDocument:
    """Test flatten_document"""

    def test_collects_text(self):
        flat = flatten_document(SAMPLE_DOC)
        assert "Login fails in src/auth/Login.cs" in flat.text
        assert "Tap login" in flat.text

    def test_collects_links_from_marks_and_cards(self):
        flat = flatten_document(SAMPLE_DOC)
        assert flat.links == [
            "https://github.com/acme/web/pull/42",
            "https://acme.atlassian.net/browse/BUG-7",
        ]

    def test_collects_list_items(self):
        flat = flatten_document(SAMPLE_DOC)
        assert flat.list_items == ["Open the app", "Tap login"]

    def test_plain_string(self):
        flat = flatten_document("Crash on startup")
        assert flat.text == "Crash on startup"
        assert flat.links == []

    def test_none_and_unknown(self):
        assert flatten_document(None).text == ""
        assert flatten_document(42).text == ""

    def test_unknown_node_types_visit_children(self):
        doc = {"type": "doc", "content": [{"type": "panel", "content": [paragraph(text("inside"))]}]}
        assert flatten_document(doc).text == "inside"

    def test_hard_break_separates_lines(self):
        doc = {"type": "doc", "content": [paragraph(text("one"), {"type": "hardBreak"}, text("two"))]}
        assert flatten_document(doc).text.split() == ["one", "two"]


class TestDocumentVisitor:
    """Test dispatch on node type"""

    def test_dispatch_by_type(self):
        seen = []

        class Recorder(DocumentVisitor):
            def visit_text(self, node):
                seen.append(node.text)

            def visit_codeBlock(self, node):
                seen.append("<code>")

        tree = DocumentNode.parse({
            "type": "doc",
            "content": [
                paragraph(text("a")),
                {"type": "codeBlock", "content": [text("ignored")]},
                paragraph(text("b")),
            ],
        })
        Recorder().visit(tree)

        assert seen == ["a", "<code>", "b"]


class TestExtraction:
    """Test file path and PR link extraction"""

    def test_file_paths(self):
        found = extract_file_paths("Crash in src/auth/Login.cs and utils\\helpers.py.")
        assert found == ["src/auth/Login.cs", "utils\\helpers.py"]

    def test_file_paths_skip_urls_and_abbreviations(self):
        found = extract_file_paths(
            "See https://example.com/docs/index.html, e.g. version 1.2 of config.yaml"
        )
        assert found == ["config.yaml"]

    def test_file_paths_deduplicated(self):
        assert extract_file_paths("app.py then app.py again") == ["app.py"]

    def test_file_paths_empty(self):
        assert extract_file_paths("") == []

    def test_pr_links_normalized(self):
        found = extract_pr_links(
            "Fixed in github.com/acme/web/pull/42 and http://github.com/acme/api/pull/7"
        )
        assert found == [
            "https://github.com/acme/web/pull/42",
            "https://github.com/acme/api/pull/7",
        ]

    def test_pr_links_not_mistaken_for_files(self):
        assert extract_file_paths("github.com/acme/web/pull/42") == []

    def test_is_pr_link(self):
        assert is_pr_link("https://github.com/acme/web/pull/42")
        assert not is_pr_link("https://github.com/acme/web/issues/42")
