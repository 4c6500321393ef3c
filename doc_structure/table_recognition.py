"""
Table Recognition — Default recognition area and recognizer used by the
table tracker.

A recognition area accumulates table tokens in document order and answers
four questions: `is_complete()` (the region has ended), `has_complete_headers()`,
`is_valid()` (a recognize call on it will succeed) and exposes its rows to a
recognizer, a callable `recognize(area) -> Table | None`. Any objects
following this contract can be plugged into the tracker instead.
"""

import logging
from typing import Optional

import numpy as np

from .models import SemanticType, Table, TableCell, TableRow, TableToken, TableTokenRow

logger = logging.getLogger(__name__)

ROW_BASELINE_TOLERANCE = 0.5
ROW_GAP_LIMIT = 3.0
COLUMN_GAP = 1.0
MIN_TABLE_ROWS = 2
MIN_TABLE_COLUMNS = 2


class TableRecognitionArea:
    """
    Groups tokens into rows by baseline. The first row is the header row.

    The area completes when a token jumps back up the page or leaves a
    vertical gap larger than ROW_GAP_LIMIT font sizes; that token is not
    added and must be presented to a fresh area.
    """

    def __init__(self):
        self.rows: list[list[TableToken]] = []
        self._complete = False

    def add_token(self, token: TableToken):
        if self._complete:
            return
        if not self.rows:
            self.rows.append([token])
            return
        anchor = self.rows[-1][0]
        font_size = max(token.font_size, anchor.font_size) or 1.0
        shift = anchor.baseline - token.baseline
        if abs(shift) <= ROW_BASELINE_TOLERANCE * font_size:
            self.rows[-1].append(token)
        elif shift < 0 or shift > ROW_GAP_LIMIT * font_size:
            self._complete = True
        else:
            self.rows.append([token])

    def is_complete(self) -> bool:
        return self._complete

    def has_complete_headers(self) -> bool:
        return len(self.rows) > 1

    def is_valid(self) -> bool:
        return len(self.rows) >= MIN_TABLE_ROWS and len(self.header_columns()) >= MIN_TABLE_COLUMNS

    def header_columns(self) -> list[list[TableToken]]:
        """Header tokens split into columns on horizontal gaps wider than COLUMN_GAP font sizes."""
        if not self.rows:
            return []
        columns = []
        for token in sorted(self.rows[0], key=lambda t: t.bbox.left):
            if columns:
                previous = columns[-1][-1]
                gap = token.bbox.left - previous.bbox.right
                if gap <= COLUMN_GAP * max(token.font_size, previous.font_size):
                    columns[-1].append(token)
                    continue
            columns.append([token])
        return columns


def recognize(area: TableRecognitionArea) -> Optional[Table]:
    """Build a table whose columns follow the header row; body tokens go to the nearest column."""
    if not area.is_valid():
        return None
    columns = area.header_columns()
    centers = np.array([(column[0].bbox.left + column[-1].bbox.right) / 2 for column in columns])

    rows = []
    for row_index, row_tokens in enumerate(area.rows):
        cell_tokens = [[] for _ in columns]
        for token in sorted(row_tokens, key=lambda t: t.bbox.left):
            column = int(np.argmin(np.abs(centers - token.bbox.center_x)))
            cell_tokens[column].append(token)
        cells = [TableCell(content=[TableTokenRow(tokens=tokens)] if tokens else [],
                           semantic_type=SemanticType.TABLE_CELL)
                 for tokens in cell_tokens]
        rows.append(TableRow(cells=cells, is_header=row_index == 0))
    logger.debug(f"  Recognized table with {len(rows)} rows and {len(columns)} columns")
    return Table(rows=rows)
