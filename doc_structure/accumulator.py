"""
Semantic Accumulator — Bottom-up synthesis of the semantic form of every tree
node from the already resolved forms of its children.

Visited in post-order, each node is merged into a candidate Span or
Paragraph scored by the merge probability model, collapsed to an image or
figure when that is all it holds, and its children are then promoted to
headings, lists and captions when their contextual probability is high
enough. Results are written to the AccumulatedNodeMapper.
"""

import logging
from typing import Callable, Optional

from . import merge_probability
from .heuristics import caption_probability, heading_probability
from .list_labels import (get_image_list_items_intervals, get_list_items_intervals, is_list_label,
                          split_misaligned_intervals)
from .mapper import AccumulatedNodeMapper
from .models import (BoundingBox, Node, NodeKind, SemanticNode, SemanticType,
                     TextFormat, TextLine)
from .tree import DocumentTree

logger = logging.getLogger(__name__)

MERGE_PROBABILITY_THRESHOLD = 0.75
ONE_LINE_MIN_PROBABILITY_THRESHOLD = 0.1
TEXT_FORMAT_BASELINE_SHIFT = 0.2

SPAN_LIKE_KINDS = frozenset({NodeKind.SPAN, NodeKind.IMAGE, NodeKind.FIGURE})
IMAGE_KINDS = frozenset({NodeKind.IMAGE, NodeKind.FIGURE})
HEADING_TYPES = frozenset({SemanticType.HEADING, SemanticType.NUMBER_HEADING})

HeadingProbability = Callable[[Optional[SemanticNode], Optional[SemanticNode], Optional[SemanticNode],
                               Optional[SemanticNode], Optional[SemanticType]], float]
CaptionProbability = Callable[[Optional[SemanticNode], Optional[SemanticNode]], float]


class SemanticAccumulator:

    def __init__(self, tree: DocumentTree, mapper: AccumulatedNodeMapper,
                 heading_probability: HeadingProbability = heading_probability,
                 caption_probability: CaptionProbability = caption_probability,
                 threshold: float = MERGE_PROBABILITY_THRESHOLD):
        self.tree = tree
        self.mapper = mapper
        self.heading_probability = heading_probability
        self.caption_probability = caption_probability
        self.threshold = threshold

    def run(self):
        order = self.tree.post_order()
        logger.info(f"Accumulating semantics over {len(order)} nodes")
        for index in order:
            self.accept(index)

    def accept(self, index: int):
        node = self.tree.nodes[index]
        if node.is_leaf:
            self.mapper.update_node(index, SemanticNode.from_tree_node(node), 1.0, node.semantic_type)
            return

        is_span = all(self._is_span_like(child, SemanticType.SPAN) for child in node.children)
        if is_span and node.initial_semantic_type in (None, SemanticType.SPAN):
            self._accumulate(node, NodeKind.SPAN)
        else:
            self._accumulate(node, NodeKind.PARAGRAPH)

        self._accept_image(node)
        self._check_special_style(node)

        is_leaf_child = all(self._is_span_like(child) for child in node.children)
        if not is_leaf_child:
            self._accept_children_heading(node)
            self._accept_list(node)
            self._accept_children_caption(node)

    def _is_span_like(self, index: int, accepted_type: Optional[SemanticType] = None) -> bool:
        semantic_type = self.mapper.semantic_type(index)
        return (self.tree.nodes[index].kind in SPAN_LIKE_KINDS or semantic_type is None or
                (accepted_type is not None and semantic_type is accepted_type))

    def _accumulate(self, node: Node, kind: NodeKind):
        probability = 1.0
        candidate = None
        for child in node.children:
            child_type = self.mapper.semantic_type(child)
            if child_type is None or SemanticType.is_ignored_standard_type(
                    self.tree.nodes[child].initial_semantic_type):
                continue
            accumulated = self.mapper.get(child)
            child_score = self.mapper.score(child)
            if candidate is None:
                candidate = self._build_candidate(accumulated, child_type, kind)
                probability = 1.0 if child_score is None else child_score
            else:
                probability = min(probability,
                                  self._merge_probability(candidate, accumulated, child_type, kind, child_score))

        if candidate is None:
            self.mapper.update_node(node.index, None, None, None)
            return
        semantic_type = SemanticType.SPAN if kind is NodeKind.SPAN else SemanticType.PARAGRAPH
        self.mapper.update_node(node.index, candidate, probability, semantic_type)
        logger.debug(f"  Node {node.index}: {semantic_type.value} with {candidate.lines_number} lines, "
                     f"score={probability:.3f}")

    def _accepts(self, accumulated: Optional[SemanticNode], child_type: SemanticType, kind: NodeKind) -> bool:
        if accumulated is None:
            logger.warning(f"Node with nullable semantic form met while building a {kind.value}")
            return False
        if kind is NodeKind.SPAN:
            return child_type is SemanticType.SPAN and accumulated.is_text
        return accumulated.is_text

    def _build_candidate(self, accumulated: Optional[SemanticNode], child_type: SemanticType,
                         kind: NodeKind) -> Optional[SemanticNode]:
        if not self._accepts(accumulated, child_type, kind):
            return None
        return accumulated.copy_as(kind)

    def _merge_probability(self, candidate: SemanticNode, accumulated: Optional[SemanticNode],
                           child_type: SemanticType, kind: NodeKind, child_score: Optional[float]) -> float:
        if not self._accepts(accumulated, child_type, kind):
            return 0.0
        probability = self._merge_lines(candidate, accumulated)
        candidate.bbox = accumulated.bbox.union(candidate.bbox) if accumulated.bbox else candidate.bbox
        return probability if child_score is None else min(probability, child_score)

    def _merge_lines(self, candidate: SemanticNode, text_node: SemanticNode) -> float:
        """
        Append the lines of `text_node` to `candidate` and return the merge probability.

        The first line of `text_node` either continues the last candidate
        line (one visual line) or starts a new paragraph line or column,
        whichever hypothesis dominates.
        """
        lines = text_node.lines
        if not lines:
            return 1.0
        last_line = candidate.last_line
        if last_line is None:
            candidate.lines.extend(lines)
            return 1.0
        next_line = lines[0]

        one_line = merge_probability.one_line_probability(last_line, next_line)
        if candidate.lines_number > 1 and len(lines) > 1:
            different_lines = merge_probability.to_paragraph_merge_probability(last_line, next_line)
        else:
            different_lines = merge_probability.merge_leading_probability(last_line, next_line)
        different_lines = max(different_lines,
                              merge_probability.to_columns_merge_probability(last_line, next_line))

        if one_line < max(different_lines, ONE_LINE_MIN_PROBABILITY_THRESHOLD):
            candidate.lines.extend(lines)
            _update_text_format(text_node, TextFormat.NORMAL)
            return different_lines

        _update_text_format(text_node, _detect_text_format(last_line, text_node))
        last_line.not_full_line = True
        next_line.not_full_line = True
        combined = last_line.joined(next_line)
        combined.not_full_line = True
        candidate.lines[-1] = combined
        probability = one_line
        if candidate.lines_number > 1 or len(lines) > 1:
            # splicing can hide a broken leading pattern on either side
            if candidate.lines_number > 1:
                probability *= merge_probability.to_paragraph_merge_probability(candidate.lines[-2], combined)
            if len(lines) > 1:
                probability *= merge_probability.to_paragraph_merge_probability(combined, lines[1])
        candidate.lines.extend(lines[1:])
        return probability

    def _accept_image(self, node: Node):
        image_child = None
        for child in node.children:
            accumulated = self.mapper.get(child)
            if accumulated is None:
                continue
            if accumulated.is_text:
                if not accumulated.is_empty and not accumulated.is_space_node:
                    return
            elif accumulated.kind in IMAGE_KINDS:
                if image_child is not None:
                    return
                image_child = child
            else:
                return
        if image_child is not None:
            self.mapper.update_node(node.index, self.mapper.get(image_child), self.mapper.score(image_child),
                                    SemanticType.FIGURE)
            logger.debug(f"  Node {node.index}: collapsed to figure of node {image_child}")

    def _check_special_style(self, node: Node):
        accumulated = self.mapper.get(node.index)
        if accumulated is None or not accumulated.is_text:
            return
        font_size = accumulated.font_size
        italic_angle = accumulated.italic_angle
        font_name = accumulated.font_name
        text_color = accumulated.text_color
        for child in self.tree.children(node.index):
            if child.kind is not NodeKind.SPAN:
                continue
            for line in child.lines:
                for chunk in line.chunks:
                    if chunk.is_whitespace:
                        continue
                    if (chunk.font_size != font_size or chunk.italic_angle != italic_angle or
                            chunk.font_name != font_name or tuple(chunk.font_color) != text_color):
                        chunk.has_special_style = True

    def _text_children(self, node: Node, include_images: bool = False) -> list[int]:
        result = []
        for child in node.children:
            accumulated = self.mapper.get(child)
            if accumulated is None:
                continue
            if accumulated.is_text:
                if not accumulated.is_space_node and not accumulated.is_empty:
                    result.append(child)
            elif include_images and accumulated.kind in IMAGE_KINDS:
                result.append(child)
        return result

    def _accept_children_heading(self, node: Node):
        children = self._text_children(node)
        if len(children) <= 1:
            return
        for i, child in enumerate(children):
            previous = children[i - 1] if i > 0 else None
            next_child = children[i + 1] if i + 1 < len(children) else None
            next_next = children[i + 2] if i + 2 < len(children) else None
            self._accept_heading(child, previous, next_child, next_next)

    def _accept_heading(self, index: int, previous: Optional[int], next_child: Optional[int],
                        next_next: Optional[int]):
        if self.mapper.semantic_type(index) is SemanticType.LIST:
            return
        accumulated = self.mapper.get(index)
        initial_type = self.tree.nodes[index].initial_semantic_type
        probability = self.heading_probability(accumulated, self.mapper.get(previous),
                                               self.mapper.get(next_child), self.mapper.get(next_next),
                                               initial_type)
        if probability < self.threshold:
            return
        if accumulated.kind not in (NodeKind.SPAN, NodeKind.PARAGRAPH):
            return
        if initial_type is SemanticType.NUMBER_HEADING:
            kind, semantic_type = NodeKind.NUMBER_HEADING, SemanticType.NUMBER_HEADING
        else:
            kind, semantic_type = NodeKind.HEADING, SemanticType.HEADING
        score = self.mapper.score(index)
        self.mapper.update_node(index, accumulated.copy_as(kind),
                                probability * (1.0 if score is None else score), semantic_type)
        logger.debug(f"  Node {index}: promoted to {semantic_type.value} (p={probability:.3f})")

    def _accept_children_caption(self, node: Node):
        children = self._text_children(node, include_images=True)
        if len(children) <= 1:
            return
        for current, following in zip(children, children[1:]):
            self._accept_caption(current, following)
            self._accept_caption(following, current)

    def _accept_caption(self, index: int, neighbor: int):
        if self.mapper.semantic_type(index) in HEADING_TYPES:
            return
        accumulated = self.mapper.get(index)
        if accumulated is None or not accumulated.is_text:
            return
        probability = self.caption_probability(accumulated, self.mapper.get(neighbor))
        if probability < self.threshold:
            return
        score = self.mapper.score(index)
        self.mapper.update_node(index, accumulated.copy_as(NodeKind.CAPTION),
                                probability * (1.0 if score is None else score), SemanticType.CAPTION)
        logger.debug(f"  Node {index}: promoted to caption of node {neighbor} (p={probability:.3f})")

    def _accept_list(self, node: Node):
        text_children, first_lines = [], []
        image_children, image_boxes = [], []
        line_art_children, line_art_boxes = [], []
        for child in node.children:
            descendant = self.tree.nodes[child]
            while len(descendant.children) == 1:
                descendant = self.tree.nodes[descendant.children[0]]
            if descendant.kind is NodeKind.IMAGE:
                image_children.append(child)
                image_boxes.append(descendant.image.bbox)
            elif descendant.kind is NodeKind.FIGURE:
                line_art_children.append(child)
                line_art_boxes.append(descendant.line_art.bbox)
            else:
                accumulated = self.mapper.get(child)
                if (accumulated is not None and accumulated.is_text and not accumulated.is_space_node and
                        not accumulated.is_empty and accumulated.first_line.text.strip()):
                    text_children.append(child)
                    first_lines.append(accumulated.first_line)

        runs = []
        if len(text_children) > 1:
            labels = [line.text.strip() for line in first_lines]
            intervals = split_misaligned_intervals(get_list_items_intervals(labels),
                                                   [line.bbox.left for line in first_lines],
                                                   [line.font_size for line in first_lines])
            runs.extend(text_children[i.start:i.end + 1] for i in intervals)
        elif (len(text_children) == 1 and node.initial_semantic_type is SemanticType.LIST and
              is_list_label(first_lines[0].text.strip()[0])):
            runs.append(text_children)

        for children, boxes in ((image_children, image_boxes), (line_art_children, line_art_boxes)):
            if len(children) > 1:
                intervals = split_misaligned_intervals(get_image_list_items_intervals(boxes),
                                                       [box.left for box in boxes],
                                                       [0.1 * box.width for box in boxes])
                runs.extend(children[i.start:i.end + 1] for i in intervals)

        # runs are computed up front; each wrap rewrites node.children
        wrappers = set()
        for items in runs:
            if not self._is_free_run(node, items, wrappers):
                logger.debug(f"  Node {node.index}: list run {items} overlaps an earlier list, skipped")
                continue
            list_index = self._update_tree_with_list(node, items)
            if list_index == node.index:
                break
            wrappers.add(list_index)

    def _is_free_run(self, node: Node, items: list[int], wrappers: set[int]) -> bool:
        siblings = node.children
        if any(item not in siblings for item in items):
            return False
        run = siblings[siblings.index(items[0]):siblings.index(items[-1]) + 1]
        return not any(child in wrappers for child in run)

    def _update_tree_with_list(self, node: Node, items: list[int]) -> int:
        if items == node.children:
            list_index = node.index
        else:
            list_index = self.tree.wrap_children(node.index, items).index

        lines: list[TextLine] = []
        score = 1.0
        for item in items:
            accumulated = self.mapper.get(item)
            item_score = self.mapper.score(item)
            score = min(score, 1.0 if item_score is None else item_score)
            if accumulated is None:
                continue
            lines.extend(accumulated.lines)
            self.mapper.update_node(item, accumulated.copy_as(NodeKind.LIST_ITEM), item_score,
                                    SemanticType.LIST_ITEM)
        bbox = BoundingBox.covering(self.tree.nodes[child].bbox for child in self.tree.nodes[list_index].children)
        self.mapper.update_node(list_index, SemanticNode(kind=NodeKind.LIST, bbox=bbox, lines=lines),
                                score, SemanticType.LIST)
        logger.debug(f"  Node {list_index}: list of {len(items)} items")
        return list_index


def _detect_text_format(last_line: TextLine, text_node: SemanticNode) -> TextFormat:
    first_line = text_node.first_line
    line_font_size = last_line.font_size
    shift = first_line.baseline - last_line.baseline
    if text_node.font_size < line_font_size and abs(shift) > TEXT_FORMAT_BASELINE_SHIFT * line_font_size:
        return TextFormat.SUPERSCRIPT if shift > 0 else TextFormat.SUBSCRIPT
    return TextFormat.NORMAL


def _update_text_format(text_node: SemanticNode, text_format: TextFormat):
    text_node.text_format = text_format
    for line in text_node.lines:
        for chunk in line.chunks:
            chunk.text_format = text_format
