"""
Table Tracker — Scans text chunks in document order, feeds them to a table
recognition area, and projects every recognized table back onto the tree.

Projection finds, for each cell, row and table, the shallowest node covering
all contributing leaves ("local root") by walking upwards from each leaf
with per-node counters: the first already-visited node on a walk is where
it meets an earlier one. Cost per table is max(O(cells * height), O(tree size)).
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .models import NodeInfo, NodeKind, SemanticType, Table, TableToken
from .table_recognition import TableRecognitionArea, recognize
from .tree import DocumentTree

logger = logging.getLogger(__name__)

TABLE_TYPE_RANKS = {
    SemanticType.TABLE_CELL: 1,
    SemanticType.TABLE_ROW: 2,
    SemanticType.TABLE_HEADER: 2,
    SemanticType.TABLE: 3,
}
MAX_TOKEN_ATTEMPTS = 2


@dataclass
class TableRegion:
    """Nodes that fed a recognized table, split by header and body."""
    table: Table
    header_nodes: list[int] = field(default_factory=list)
    body_nodes: list[int] = field(default_factory=list)


class TableTracker:

    def __init__(self, tree: DocumentTree,
                 area_factory: Callable[[], TableRecognitionArea] = TableRecognitionArea,
                 recognizer: Callable[[TableRecognitionArea], Optional[Table]] = recognize):
        self.tree = tree
        self.area_factory = area_factory
        self.recognizer = recognizer
        self.tables: list[Table] = []
        self.table_regions: list[TableRegion] = []
        self.node_info: list[NodeInfo] = []
        self._table_ids = itertools.count(1)
        self._reset()

    def _reset(self):
        self._area = self.area_factory()
        self._header_nodes: list[int] = []
        self._body_nodes: list[int] = []

    def run(self):
        for index in self.tree.post_order():
            self.accept(index)
        logger.info(f"Recognized {len(self.tables)} tables")

    def accept(self, index: int):
        node = self.tree.nodes[index]
        if node.kind is NodeKind.SPAN:
            for line in node.lines:
                for chunk in line.chunks:
                    if chunk.is_whitespace:
                        continue
                    self._add_token(TableToken(chunk=chunk, node=index))

        if node.is_root:
            if self._area.is_valid():
                self._recognize()
            self.update_tree_with_recognized_tables()

    def _add_token(self, token: TableToken):
        for _ in range(MAX_TOKEN_ATTEMPTS):
            self._area.add_token(token)
            if not self._area.is_complete():
                bucket = self._body_nodes if self._area.has_complete_headers() else self._header_nodes
                if not bucket or bucket[-1] != token.node:
                    bucket.append(token.node)
                return
            if self._area.is_valid():
                self._recognize()
            self._reset()
        logger.warning(f"Token {token.text!r} of node {token.node} completed a fresh area, dropped")

    def _recognize(self):
        table = self.recognizer(self._area)
        if table is None:
            logger.debug("  Recognition area rejected by recognizer")
            return
        if table.id is None:
            table.id = next(self._table_ids)
        self.tables.append(table)
        self.table_regions.append(TableRegion(table=table, header_nodes=list(self._header_nodes),
                                              body_nodes=list(self._body_nodes)))

    def update_tree_with_recognized_tables(self):
        self._init_node_info()
        for table in self.tables:
            table_root = self._update_tree_with_recognized_table(table)
            if table_root is not None:
                self._set_table_type(table_root, SemanticType.TABLE, force=True)
                if self.tree.nodes[table_root].kind is NodeKind.GROUP:
                    self.tree.nodes[table_root].kind = NodeKind.TABLE_GROUP
                logger.debug(f"  Table {table.id} projected onto node {table_root}")

    def _update_tree_with_recognized_table(self, table: Table) -> Optional[int]:
        table_leaves = []
        for row in table.rows:
            row_leaves = []
            for cell in row.cells:
                cell_leaves = [token.node for token in cell.tokens if token.node is not None]
                cell_root = self._find_local_root(cell_leaves)
                if cell_root is not None:
                    self._set_table_type(cell_root, cell.semantic_type)
                    self.tree.nodes[cell_root].recognized_structure_id = table.id
                row_leaves.extend(cell_leaves)
            row_root = self._find_local_root(row_leaves)
            if row_root is not None:
                self._set_table_type(row_root, SemanticType.TABLE_HEADER if row.is_header
                                     else SemanticType.TABLE_ROW)
            table_leaves.extend(row_leaves)
        return self._find_local_root(table_leaves)

    def _find_local_root(self, leaves: list[int]) -> Optional[int]:
        local_root = None
        touched = []
        for leaf in leaves:
            node = self.tree.nodes[leaf]
            current = leaf if node.is_root else node.parent
            if local_root is None:
                local_root = current
            while True:
                info = self.node_info[current]
                info.counter += 1
                touched.append(current)
                if info.counter > 1:
                    if info.depth < self.node_info[local_root].depth:
                        local_root = current
                    break
                parent = self.tree.nodes[current].parent
                if parent is None:
                    break
                current = parent
        for index in touched:
            self.node_info[index].counter = 0
        return local_root

    def _set_table_type(self, index: int, semantic_type: SemanticType, force: bool = False):
        node = self.tree.nodes[index]
        if not force and TABLE_TYPE_RANKS.get(node.semantic_type, 0) > TABLE_TYPE_RANKS[semantic_type]:
            return
        node.semantic_type = semantic_type
        node.score = 1.0

    def _init_node_info(self):
        self.node_info = [NodeInfo() for _ in self.tree.nodes]
        for index in self.tree.pre_order():
            parent = self.tree.nodes[index].parent
            self.node_info[index].depth = 0 if parent is None else self.node_info[parent].depth + 1
