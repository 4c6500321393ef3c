"""
Document Tree — Arena of tree nodes with index-based parent/child links,
iterative traversals, wrapper insertion and JSON-compatible (de)serialization.
"""

import logging
from typing import Optional

from .models import (BoundingBox, ImageChunk, LineArtChunk, Node, NodeKind, SemanticType,
                     TextChunk, TextLine)

logger = logging.getLogger(__name__)


class DocumentTree:
    """Nodes are stored flat in `nodes`; the root is always `nodes[0]`."""

    def __init__(self):
        self.nodes: list[Node] = []

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def root(self) -> Node:
        return self.nodes[0]

    def add_node(self, parent: Optional[int] = None, kind: NodeKind = NodeKind.GROUP,
                 initial_semantic_type: Optional[SemanticType] = None,
                 semantic_type: Optional[SemanticType] = None,
                 bbox: Optional[BoundingBox] = None, lines: Optional[list[TextLine]] = None,
                 image: Optional[ImageChunk] = None, line_art: Optional[LineArtChunk] = None) -> Node:
        node = Node(index=len(self.nodes), kind=kind, bbox=bbox,
                    initial_semantic_type=initial_semantic_type, semantic_type=semantic_type,
                    parent=parent, lines=lines or [], image=image, line_art=line_art)
        self.nodes.append(node)
        if parent is not None:
            self.nodes[parent].children.append(node.index)
            self._extend_bbox(parent, bbox)
        return node

    def add_text(self, parent: Optional[int], lines: list[TextLine],
                 initial_semantic_type: Optional[SemanticType] = None) -> Node:
        bbox = BoundingBox.covering(line.bbox for line in lines)
        return self.add_node(parent, NodeKind.SPAN, initial_semantic_type, SemanticType.SPAN,
                             bbox=bbox, lines=lines)

    def add_image(self, parent: Optional[int], image: ImageChunk,
                  initial_semantic_type: Optional[SemanticType] = None) -> Node:
        return self.add_node(parent, NodeKind.IMAGE, initial_semantic_type, SemanticType.FIGURE,
                             bbox=image.bbox, image=image)

    def add_line_art(self, parent: Optional[int], line_art: LineArtChunk,
                     initial_semantic_type: Optional[SemanticType] = None) -> Node:
        return self.add_node(parent, NodeKind.FIGURE, initial_semantic_type, SemanticType.FIGURE,
                             bbox=line_art.bbox, line_art=line_art)

    def _extend_bbox(self, index: int, bbox: Optional[BoundingBox]):
        while index is not None and bbox is not None:
            node = self.nodes[index]
            node.bbox = bbox if node.bbox is None else node.bbox.union(bbox)
            index = node.parent

    def parent(self, index: int) -> Optional[Node]:
        parent = self.nodes[index].parent
        return None if parent is None else self.nodes[parent]

    def children(self, index: int) -> list[Node]:
        return [self.nodes[child] for child in self.nodes[index].children]

    def depth(self, index: int) -> int:
        depth = 0
        while self.nodes[index].parent is not None:
            index = self.nodes[index].parent
            depth += 1
        return depth

    def post_order(self, start: int = 0) -> list[int]:
        """Children before parents, siblings left to right; `start` comes last."""
        order = []
        stack = [(start, False)]
        while stack:
            index, expanded = stack.pop()
            if expanded:
                order.append(index)
                continue
            stack.append((index, True))
            for child in reversed(self.nodes[index].children):
                stack.append((child, False))
        return order

    def pre_order(self, start: int = 0) -> list[int]:
        order = []
        stack = [start]
        while stack:
            index = stack.pop()
            order.append(index)
            stack.extend(reversed(self.nodes[index].children))
        return order

    def wrap_children(self, parent: int, members: list[int]) -> Node:
        """
        Insert a new group node under `parent` in place of the contiguous run
        of children from `members[0]` to `members[-1]`, and move that run
        under it.
        """
        siblings = self.nodes[parent].children
        first = siblings.index(members[0])
        last = siblings.index(members[-1])
        covered = siblings[first:last + 1]
        wrapper = Node(index=len(self.nodes), kind=NodeKind.GROUP, parent=parent, children=covered,
                       bbox=BoundingBox.covering(self.nodes[child].bbox for child in covered))
        self.nodes.append(wrapper)
        siblings[first:last + 1] = [wrapper.index]
        for child in covered:
            self.nodes[child].parent = wrapper.index
        logger.debug(f"  Wrapped children {covered} of node {parent} into node {wrapper.index}")
        return wrapper

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentTree":
        """
        Build a tree from nested dicts.

        Each dict may carry "type" (initial structure type name) and one of
        "children", "lines" (list of lists of chunk dicts), "chunks" (a single
        line), "image" or "line_art" ({"bbox": [l, b, r, t]}).

        Raises:
            ValueError: On unknown type names or malformed bounding boxes.
        """
        tree = cls()
        tree._load(data, None)
        return tree

    def _load(self, data: dict, parent: Optional[int]):
        initial_type = SemanticType.from_name(data.get("type"))
        if "lines" in data or "chunks" in data:
            raw_lines = data.get("lines") or [data.get("chunks", [])]
            lines = [TextLine(chunks=[_chunk_from_dict(chunk) for chunk in raw_line])
                     for raw_line in raw_lines if raw_line]
            self.add_text(parent, lines, initial_type)
        elif "image" in data:
            self.add_image(parent, ImageChunk(bbox=_bbox_from_list(data["image"]["bbox"])), initial_type)
        elif "line_art" in data:
            self.add_line_art(parent, LineArtChunk(bbox=_bbox_from_list(data["line_art"]["bbox"])),
                              initial_type)
        else:
            node = self.add_node(parent, NodeKind.GROUP, initial_type)
            for child in data.get("children", []):
                self._load(child, node.index)

    def to_dict(self, index: int = 0) -> dict:
        node = self.nodes[index]
        result = {
            "index": node.index,
            "kind": node.kind.value,
            "initial_type": node.initial_semantic_type.value if node.initial_semantic_type else None,
            "type": node.semantic_type.value if node.semantic_type else None,
            "score": node.score,
            "bbox": _bbox_to_list(node.bbox),
        }
        if node.recognized_structure_id is not None:
            result["table_id"] = node.recognized_structure_id
        if node.lines:
            result["text"] = "\n".join(line.text for line in node.lines)
        if node.children:
            result["children"] = [self.to_dict(child) for child in node.children]
        return result


def _bbox_from_list(values) -> BoundingBox:
    if values is None or len(values) != 4:
        raise ValueError(f"Bounding box must have 4 coordinates, got {values!r}")
    left, bottom, right, top = (float(v) for v in values)
    if left > right or bottom > top:
        raise ValueError(f"Bounding box is inverted: {values!r}")
    return BoundingBox(left=left, bottom=bottom, right=right, top=top)


def _bbox_to_list(bbox: Optional[BoundingBox]):
    if bbox is None:
        return None
    return [bbox.left, bbox.bottom, bbox.right, bbox.top]


def _chunk_from_dict(data: dict) -> TextChunk:
    bbox = _bbox_from_list(data.get("bbox"))
    return TextChunk(text=data.get("text", ""), bbox=bbox,
                     font_name=data.get("font_name", ""),
                     font_size=float(data.get("font_size", 10.0)),
                     font_color=tuple(data.get("font_color", (0.0, 0.0, 0.0))),
                     baseline=float(data.get("baseline", bbox.bottom)),
                     italic_angle=float(data.get("italic_angle", 0.0)),
                     style_flags=int(data.get("style_flags", 0)))
