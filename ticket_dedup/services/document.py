"""
Rich-text document adapter

Ticket descriptions arrive as nested content blocks (paragraphs, lists,
text nodes carrying link marks). This module parses them into a tagged tree
and flattens the tree with a visitor into plain text, links and list items,
so the similarity core only ever sees plain fields.

Also provides regex extraction of file paths and PR links from text.
"""
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DocumentMark(BaseModel):
    """Inline mark on a text node (link, strong, code, ...)"""
    type: str = ""
    attrs: Dict[str, Any] = Field(default_factory=dict)


class DocumentNode(BaseModel):
    """One node of the rich-text tree, tagged by `type`"""
    type: str = ""
    text: Optional[str] = None
    content: List["DocumentNode"] = Field(default_factory=list)
    marks: List[DocumentMark] = Field(default_factory=list)
    attrs: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse(cls, raw: Any) -> Optional["DocumentNode"]:
        """Build a tree from a raw payload; plain strings become a text node"""
        if raw is None:
            return None
        if isinstance(raw, str):
            return cls(type="text", text=raw)
        if isinstance(raw, dict):
            return cls.model_validate(raw)
        return None


class FlatDocument(BaseModel):
    """Flattened view of a document"""
    text: str = ""
    links: List[str] = Field(default_factory=list)
    list_items: List[str] = Field(default_factory=list)


class DocumentVisitor:
    """
    Walks a DocumentNode tree, dispatching on node type.

    Subclasses define visit_<type> methods; unknown types fall through to
    generic_visit, which visits the children.
    """

    def visit(self, node: DocumentNode) -> None:
        method = getattr(self, f"visit_{node.type}", self.generic_visit)
        method(node)

    def generic_visit(self, node: DocumentNode) -> None:
        for child in node.content:
            self.visit(child)


class FlatteningVisitor(DocumentVisitor):
    """Collects text, link targets and list items from a document"""

    def __init__(self):
        self._parts: List[str] = []
        self.links: List[str] = []
        self.list_items: List[str] = []

    def visit_text(self, node: DocumentNode) -> None:
        if node.text:
            self._parts.append(node.text)
        for mark in node.marks:
            href = mark.attrs.get("href")
            if mark.type == "link" and href and href not in self.links:
                self.links.append(href)

    def visit_hardBreak(self, node: DocumentNode) -> None:
        self._parts.append("\n")

    def visit_inlineCard(self, node: DocumentNode) -> None:
        url = node.attrs.get("url")
        if url and url not in self.links:
            self.links.append(url)

    def visit_listItem(self, node: DocumentNode) -> None:
        item = FlatteningVisitor()
        item.generic_visit(node)
        text = item.text
        if text:
            self.list_items.append(text)
        self._parts.append(text)
        for link in item.links:
            if link not in self.links:
                self.links.append(link)
        self.list_items.extend(item.list_items)

    @property
    def text(self) -> str:
        return re.sub(r"[ \t]+", " ", " ".join(self._parts)).strip()

    def result(self) -> FlatDocument:
        return FlatDocument(text=self.text, links=list(self.links), list_items=list(self.list_items))


def flatten_document(raw: Any) -> FlatDocument:
    """
    Flatten a raw rich-text payload

    Args:
        raw: Document dict, plain string or None

    Returns:
        FlatDocument (empty when there is nothing to read)
    """
    node = DocumentNode.parse(raw)
    if node is None:
        return FlatDocument()
    visitor = FlatteningVisitor()
    visitor.visit(node)
    return visitor.result()


# ============================================================================
# Text extraction
# ============================================================================

_FILE_PATH = re.compile(r"(?<![\w/\\.])(?:[\w.-]+[\\/])*[\w-]+\.[A-Za-z][A-Za-z0-9]{1,5}\b")
_PR_LINK = re.compile(
    r"(?:https?://)?github\.com/[^/\s]+/[^/\s]+/(?:pull|pr)/\d+",
    re.IGNORECASE
)
_URL = re.compile(r"https?://\S+")


def extract_file_paths(text: str) -> List[str]:
    """
    File paths mentioned in text (e.g. "src/auth/Login.cs")

    URLs are ignored. Order of first appearance is kept, duplicates dropped.
    """
    if not text:
        return []

    text = _PR_LINK.sub(" ", _URL.sub(" ", text))
    paths: List[str] = []
    for match in _FILE_PATH.finditer(text):
        path = match.group(0).rstrip(".")
        if path and path not in paths:
            paths.append(path)
    return paths


def extract_pr_links(text: str) -> List[str]:
    """GitHub pull request links in text, normalised to https://"""
    if not text:
        return []

    links: List[str] = []
    for match in _PR_LINK.finditer(text):
        link = match.group(0)
        if not link.lower().startswith("http"):
            link = "https://" + link
        elif link.lower().startswith("http://"):
            link = "https://" + link[len("http://"):]
        if link not in links:
            links.append(link)
    return links


def is_pr_link(url: str) -> bool:
    return "github.com" in url and ("/pull/" in url or "/pr/" in url)
