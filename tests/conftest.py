from typing import Optional

import pytest

from doc_structure.models import BoundingBox, ImageChunk, SemanticType, TextChunk, TextLine
from doc_structure.tree import DocumentTree


def make_chunk(text: str, left: float, bottom: float, right: float, top: Optional[float] = None,
               font_size: float = 10.0, font_name: str = "Helvetica", font_color=(0.0, 0.0, 0.0),
               baseline: Optional[float] = None, italic_angle: float = 0.0) -> TextChunk:
    return TextChunk(text=text,
                     bbox=BoundingBox(left, bottom, right, bottom + font_size if top is None else top),
                     font_name=font_name, font_size=font_size, font_color=font_color,
                     baseline=bottom if baseline is None else baseline, italic_angle=italic_angle)


def make_line(*chunks: TextChunk) -> TextLine:
    return TextLine(chunks=list(chunks))


def add_text(tree: DocumentTree, parent: Optional[int], text: str, left: float, bottom: float,
             right: float, initial_type: Optional[SemanticType] = None, **kwargs) -> int:
    """Add a one-line, one-chunk text leaf and return its index."""
    chunk = make_chunk(text, left, bottom, right, **kwargs)
    return tree.add_text(parent, [make_line(chunk)], initial_type).index


def add_group(tree: DocumentTree, parent: Optional[int],
              initial_type: Optional[SemanticType] = None) -> int:
    return tree.add_node(parent, initial_semantic_type=initial_type).index


def add_image(tree: DocumentTree, parent: Optional[int], left: float, bottom: float,
              right: float, top: float) -> int:
    return tree.add_image(parent, ImageChunk(bbox=BoundingBox(left, bottom, right, top))).index


@pytest.fixture
def tree() -> DocumentTree:
    return DocumentTree()


@pytest.fixture
def grid_tree() -> tuple[DocumentTree, dict]:
    """
    A 2x2 table laid out as Div -> (header group -> Name, Age), (body group -> Bob, 42).
    """
    tree = DocumentTree()
    root = add_group(tree, None, SemanticType.DIV)
    header = add_group(tree, root)
    name = add_text(tree, header, "Name", 0, 100, 30)
    age = add_text(tree, header, "Age", 60, 100, 80)
    body = add_group(tree, root)
    bob = add_text(tree, body, "Bob", 0, 85, 20)
    value = add_text(tree, body, "42", 60, 85, 70)
    return tree, {"root": root, "header": header, "body": body,
                  "name": name, "age": age, "bob": bob, "value": value}
