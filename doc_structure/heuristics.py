"""
Heuristics — Default heading and caption probability models.

Both are plain functions over synthesized semantic nodes and can be
replaced by any callable with the same signature.
"""

import re
from typing import Optional

from .merge_probability import uniform_probability
from .models import NodeKind, SemanticNode, SemanticType

MAX_HEADING_LINES = 3
HEADING_FONT_SIZE_RATIO = 1.2
HEADING_FONT_SIZE_FALLOFF = 0.2
HINTED_HEADING_BONUS = 0.3
SENTENCE_END_PENALTY = 0.5

CAPTION_MAX_GAP = 1.5
CAPTION_GAP_FALLOFF = 1.5
CAPTION_MAX_LINES = 4
UNLABELED_CAPTION_FACTOR = 0.8
CAPTION_LABEL_RE = re.compile(r"^\s*(figure|fig\.|table|image|chart)\s*\S", re.IGNORECASE)


def heading_probability(candidate: Optional[SemanticNode], previous: Optional[SemanticNode],
                        next_node: Optional[SemanticNode], next_next: Optional[SemanticNode],
                        initial_type: Optional[SemanticType]) -> float:
    """
    Probability that `candidate` heads the text that follows it.

    A heading is short, set in a larger font than the next text node and
    placed above it. `previous` and `next_next` complete the context window
    for replacement models; this one only looks at the immediate successor.
    """
    if candidate is None or not candidate.is_text or candidate.is_empty:
        return 0.0
    if next_node is None or not next_node.is_text or next_node.is_empty:
        return 0.0
    if candidate.lines_number > MAX_HEADING_LINES:
        return 0.0
    if candidate.bbox.bottom < next_node.bbox.top - next_node.font_size:
        return 0.0
    if next_node.font_size <= 0:
        return 0.0

    ratio = candidate.font_size / next_node.font_size
    probability = uniform_probability((HEADING_FONT_SIZE_RATIO, float("inf")), ratio,
                                      HEADING_FONT_SIZE_FALLOFF)
    if initial_type in (SemanticType.HEADING, SemanticType.NUMBER_HEADING):
        probability = min(1.0, probability + HINTED_HEADING_BONUS)
    if candidate.value.rstrip().endswith("."):
        probability *= SENTENCE_END_PENALTY
    return probability


def caption_probability(candidate: Optional[SemanticNode], neighbor: Optional[SemanticNode]) -> float:
    """Probability that text `candidate` captions the image or figure `neighbor`."""
    if candidate is None or not candidate.is_text or candidate.is_empty or candidate.is_space_node:
        return 0.0
    if neighbor is None or neighbor.kind not in (NodeKind.IMAGE, NodeKind.FIGURE):
        return 0.0
    font_size = candidate.font_size
    if font_size <= 0:
        return 0.0

    gap = max(0.0, candidate.bbox.bottom - neighbor.bbox.top, neighbor.bbox.bottom - candidate.bbox.top)
    probability = uniform_probability((0.0, CAPTION_MAX_GAP), gap / font_size, CAPTION_GAP_FALLOFF)
    overlap = min(candidate.bbox.right, neighbor.bbox.right) - max(candidate.bbox.left, neighbor.bbox.left)
    if overlap <= 0:
        return 0.0
    if not CAPTION_LABEL_RE.match(candidate.value):
        probability *= UNLABELED_CAPTION_FACTOR
    if candidate.lines_number > CAPTION_MAX_LINES:
        probability *= 0.5
    return probability
