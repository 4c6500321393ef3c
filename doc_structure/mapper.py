"""
Accumulated Node Mapper — Associates each original tree node with its
synthesized semantic form, score and resolved structure type.

One mapper is created per document check and passed explicitly to the
passes that need it. Reclassification goes through the mapper; the tree
itself is only rewritten by `apply`.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .models import SemanticNode, SemanticType

logger = logging.getLogger(__name__)


@dataclass
class AccumulatedEntry:
    node: Optional[SemanticNode]
    score: Optional[float]
    semantic_type: Optional[SemanticType]


class AccumulatedNodeMapper:

    def __init__(self):
        self._entries: dict[int, AccumulatedEntry] = {}

    def __contains__(self, index: int) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def update_node(self, index: int, node: Optional[SemanticNode], score: Optional[float],
                    semantic_type: Optional[SemanticType]):
        self._entries[index] = AccumulatedEntry(node=node, score=score, semantic_type=semantic_type)

    def entry(self, index: Optional[int]) -> Optional[AccumulatedEntry]:
        if index is None:
            return None
        return self._entries.get(index)

    def get(self, index: Optional[int]) -> Optional[SemanticNode]:
        entry = self.entry(index)
        return entry.node if entry else None

    def score(self, index: Optional[int]) -> Optional[float]:
        entry = self.entry(index)
        return entry.score if entry else None

    def semantic_type(self, index: Optional[int]) -> Optional[SemanticType]:
        entry = self.entry(index)
        return entry.semantic_type if entry else None

    def apply(self, tree):
        """Write resolved types and scores into the tree nodes."""
        for index, entry in self._entries.items():
            node = tree.nodes[index]
            node.semantic_type = entry.semantic_type
            node.score = entry.score
        logger.debug(f"  Applied {len(self._entries)} accumulated nodes to the tree")
