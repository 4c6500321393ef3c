"""
Data models used across the document structure pipeline.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class BoundingBox:
    """An axis-aligned rectangle in page coordinates (y grows upwards)."""
    left: float
    bottom: float
    right: float
    top: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2

    def union(self, other: Optional["BoundingBox"]) -> "BoundingBox":
        """Return the smallest box covering both boxes."""
        if other is None:
            return self
        return BoundingBox(left=min(self.left, other.left), bottom=min(self.bottom, other.bottom),
                           right=max(self.right, other.right), top=max(self.top, other.top))

    def intersection(self, other: "BoundingBox") -> Optional["BoundingBox"]:
        """Return the overlapping box, or None when the boxes are disjoint."""
        left = max(self.left, other.left)
        bottom = max(self.bottom, other.bottom)
        right = min(self.right, other.right)
        top = min(self.top, other.top)
        if left > right or bottom > top:
            return None
        return BoundingBox(left=left, bottom=bottom, right=right, top=top)

    @classmethod
    def covering(cls, boxes) -> Optional["BoundingBox"]:
        result = None
        for box in boxes:
            if box is None:
                continue
            result = box if result is None else result.union(box)
        return result


class SemanticType(str, Enum):
    """Standard structure types, valued by their tag names."""
    DOCUMENT = "Document"
    PART = "Part"
    DIV = "Div"
    SPAN = "Span"
    PARAGRAPH = "P"
    HEADING = "H"
    NUMBER_HEADING = "Hn"
    CAPTION = "Caption"
    FIGURE = "Figure"
    LIST = "L"
    LIST_ITEM = "LI"
    TABLE = "Table"
    TABLE_ROW = "TR"
    TABLE_HEADER = "TH"
    TABLE_CELL = "TD"
    FORM = "Form"
    LINK = "Link"
    ANNOT = "Annot"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["SemanticType"]:
        if name is None:
            return None
        if len(name) == 2 and name[0] == "H" and name[1] in "123456":
            return cls.NUMBER_HEADING
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown semantic type: {name!r}") from None

    @classmethod
    def is_ignored_standard_type(cls, semantic_type: Optional["SemanticType"]) -> bool:
        return semantic_type in IGNORED_STANDARD_TYPES


IGNORED_STANDARD_TYPES = frozenset({SemanticType.FORM, SemanticType.LINK, SemanticType.ANNOT})


class NodeKind(Enum):
    """Variant tag of a tree node or of a synthesized semantic node."""
    SPAN = "span"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    NUMBER_HEADING = "number_heading"
    CAPTION = "caption"
    IMAGE = "image"
    FIGURE = "figure"
    LIST = "list"
    LIST_ITEM = "list_item"
    TABLE_GROUP = "table_group"
    GROUP = "group"


TEXT_KINDS = frozenset({NodeKind.SPAN, NodeKind.PARAGRAPH, NodeKind.HEADING,
                        NodeKind.NUMBER_HEADING, NodeKind.CAPTION})


class TextFormat(Enum):
    NORMAL = "normal"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"


@dataclass
class TextChunk:
    """A run of text drawn with a single font."""
    text: str
    bbox: BoundingBox
    font_name: str = ""
    font_size: float = 10.0
    font_color: tuple = (0.0, 0.0, 0.0)
    baseline: float = 0.0
    italic_angle: float = 0.0
    style_flags: int = 0
    has_special_style: bool = False
    text_format: TextFormat = TextFormat.NORMAL

    @property
    def is_whitespace(self) -> bool:
        return not self.text.strip()


@dataclass
class TextLine:
    """Chunks of one visual line, in left-to-right reading order."""
    chunks: list[TextChunk] = field(default_factory=list)
    not_full_line: bool = False

    @property
    def first_chunk(self) -> Optional[TextChunk]:
        return self.chunks[0] if self.chunks else None

    @property
    def last_chunk(self) -> Optional[TextChunk]:
        return self.chunks[-1] if self.chunks else None

    @property
    def text(self) -> str:
        return "".join(chunk.text for chunk in self.chunks)

    @property
    def bbox(self) -> Optional[BoundingBox]:
        return BoundingBox.covering(chunk.bbox for chunk in self.chunks)

    @property
    def font_size(self) -> float:
        return max((chunk.font_size for chunk in self.chunks), default=0.0)

    @property
    def baseline(self) -> float:
        return self.chunks[0].baseline if self.chunks else 0.0

    @property
    def font_name(self) -> str:
        return self.chunks[0].font_name if self.chunks else ""

    @property
    def font_color(self) -> tuple:
        return self.chunks[0].font_color if self.chunks else ()

    def joined(self, other: "TextLine") -> "TextLine":
        return TextLine(chunks=self.chunks + other.chunks)


@dataclass
class ImageChunk:
    bbox: BoundingBox


@dataclass
class LineArtChunk:
    bbox: BoundingBox


@dataclass
class Node:
    """
    A node of the document tree.

    Parent and children are indices into the owning DocumentTree arena.
    `initial_semantic_type` is the hint from the source tree and is never
    overwritten; `semantic_type` and `score` are unset until classified.
    """
    index: int
    kind: NodeKind = NodeKind.GROUP
    bbox: Optional[BoundingBox] = None
    initial_semantic_type: Optional[SemanticType] = None
    semantic_type: Optional[SemanticType] = None
    score: Optional[float] = None
    parent: Optional[int] = None
    children: list[int] = field(default_factory=list)
    lines: list[TextLine] = field(default_factory=list)
    image: Optional[ImageChunk] = None
    line_art: Optional[LineArtChunk] = None
    recognized_structure_id: Optional[int] = None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass
class SemanticNode:
    """Synthesized semantic form of a tree node, built during accumulation."""
    kind: NodeKind
    bbox: Optional[BoundingBox] = None
    lines: list[TextLine] = field(default_factory=list)
    image: Optional[ImageChunk] = None
    line_art: Optional[LineArtChunk] = None
    text_format: TextFormat = TextFormat.NORMAL
    initial_semantic_type: Optional[SemanticType] = None

    @classmethod
    def from_tree_node(cls, node: Node) -> "SemanticNode":
        return cls(kind=node.kind, bbox=node.bbox, lines=list(node.lines), image=node.image,
                   line_art=node.line_art, initial_semantic_type=node.initial_semantic_type)

    def copy_as(self, kind: NodeKind) -> "SemanticNode":
        return SemanticNode(kind=kind, bbox=self.bbox, lines=list(self.lines), image=self.image,
                            line_art=self.line_art, text_format=self.text_format,
                            initial_semantic_type=self.initial_semantic_type)

    @property
    def is_text(self) -> bool:
        return self.kind in TEXT_KINDS

    @property
    def lines_number(self) -> int:
        return len(self.lines)

    @property
    def first_line(self) -> Optional[TextLine]:
        return self.lines[0] if self.lines else None

    @property
    def last_line(self) -> Optional[TextLine]:
        return self.lines[-1] if self.lines else None

    @property
    def value(self) -> str:
        return "\n".join(line.text for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not any(line.chunks for line in self.lines)

    @property
    def is_space_node(self) -> bool:
        return all(chunk.is_whitespace for line in self.lines for chunk in line.chunks)

    def _dominant_chunk(self) -> Optional[TextChunk]:
        weights = Counter()
        samples = {}
        for line in self.lines:
            for chunk in line.chunks:
                if chunk.is_whitespace:
                    continue
                key = (chunk.font_name, chunk.font_size, chunk.italic_angle, tuple(chunk.font_color))
                weights[key] += len(chunk.text.strip())
                samples.setdefault(key, chunk)
        if not weights:
            return None
        return samples[weights.most_common(1)[0][0]]

    @property
    def font_size(self) -> float:
        chunk = self._dominant_chunk()
        return chunk.font_size if chunk else 0.0

    @property
    def font_name(self) -> Optional[str]:
        chunk = self._dominant_chunk()
        return chunk.font_name if chunk else None

    @property
    def italic_angle(self) -> Optional[float]:
        chunk = self._dominant_chunk()
        return chunk.italic_angle if chunk else None

    @property
    def text_color(self) -> Optional[tuple]:
        chunk = self._dominant_chunk()
        return tuple(chunk.font_color) if chunk else None


@dataclass
class NodeInfo:
    """Scratch state of one node during table projection."""
    depth: int = 0
    counter: int = 0


@dataclass
class ListInterval:
    """Inclusive range of candidate indices forming one list."""
    start: int
    end: int

    @property
    def number_of_items(self) -> int:
        return self.end - self.start + 1


@dataclass
class TableToken:
    """A text chunk fed to table recognition, with the tree node it came from."""
    chunk: TextChunk
    node: Optional[int] = None

    @property
    def bbox(self) -> BoundingBox:
        return self.chunk.bbox

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def font_size(self) -> float:
        return self.chunk.font_size

    @property
    def baseline(self) -> float:
        return self.chunk.baseline


@dataclass
class TableTokenRow:
    tokens: list[TableToken] = field(default_factory=list)


@dataclass
class TableCell:
    content: list[TableTokenRow] = field(default_factory=list)
    semantic_type: SemanticType = SemanticType.TABLE_CELL

    @property
    def tokens(self) -> list[TableToken]:
        return [token for row in self.content for token in row.tokens]


@dataclass
class TableRow:
    cells: list[TableCell] = field(default_factory=list)
    is_header: bool = False


@dataclass
class Table:
    """A recognized table: ordered rows, each an ordered list of cells."""
    rows: list[TableRow] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def bbox(self) -> Optional[BoundingBox]:
        return BoundingBox.covering(token.bbox for row in self.rows for cell in row.cells
                                    for token in cell.tokens)
