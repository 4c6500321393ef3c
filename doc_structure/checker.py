"""
Semantic Checker — Runs the structure inference passes over one document tree.

The passes run to completion one after the other: bottom-up accumulation,
writing the accumulated types back to the tree, then table tracking and
projection.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .accumulator import (MERGE_PROBABILITY_THRESHOLD, CaptionProbability, HeadingProbability,
                          SemanticAccumulator)
from .heuristics import caption_probability, heading_probability
from .mapper import AccumulatedNodeMapper
from .models import Table
from .table_recognition import TableRecognitionArea, recognize
from .table_tracker import TableRegion, TableTracker
from .tree import DocumentTree

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    tree: DocumentTree
    mapper: AccumulatedNodeMapper
    tables: list[Table] = field(default_factory=list)
    table_regions: list[TableRegion] = field(default_factory=list)


def check_semantic_document(tree: DocumentTree,
                            heading_probability: HeadingProbability = heading_probability,
                            caption_probability: CaptionProbability = caption_probability,
                            threshold: float = MERGE_PROBABILITY_THRESHOLD,
                            detect_tables: bool = True,
                            area_factory: Callable[[], TableRecognitionArea] = TableRecognitionArea,
                            recognizer: Callable[[TableRecognitionArea], Optional[Table]] = recognize) -> CheckResult:
    """
    Infer document structure in place.

    Args:
        tree: Tree produced by the page-content extractor; nodes are re-typed
              and scored in place.
        heading_probability: Context model (candidate, previous, next,
              next-next, initial hint) -> [0, 1].
        caption_probability: Model (candidate, neighbor) -> [0, 1].
        threshold: Minimum probability for heading and caption promotion.
        detect_tables: Run the table tracking and projection pass.
        area_factory: Creates a fresh table recognition area.
        recognizer: Turns a valid recognition area into a Table, or None.

    Returns:
        CheckResult with the tree, the mapper and the recognized tables.
    """
    if not tree.nodes:
        logger.warning("Empty document tree, nothing to check")
        return CheckResult(tree=tree, mapper=AccumulatedNodeMapper())

    mapper = AccumulatedNodeMapper()
    accumulator = SemanticAccumulator(tree, mapper, heading_probability=heading_probability,
                                      caption_probability=caption_probability, threshold=threshold)
    accumulator.run()
    mapper.apply(tree)

    result = CheckResult(tree=tree, mapper=mapper)
    if detect_tables:
        tracker = TableTracker(tree, area_factory=area_factory, recognizer=recognizer)
        tracker.run()
        result.tables = tracker.tables
        result.table_regions = tracker.table_regions
    return result
