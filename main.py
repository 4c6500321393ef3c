"""
Document Structure Inference — CLI Entry Point

Usage:
    python main.py -i page_tree.json -o structure.json
    python main.py -i page_tree.json -o structure.json --no-tables -v
"""

import argparse
import json
import logging
import os
import sys
import time

from doc_structure.accumulator import MERGE_PROBABILITY_THRESHOLD
from doc_structure.checker import check_semantic_document
from doc_structure.models import Table
from doc_structure.tree import DocumentTree


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")


def _table_to_dict(table: Table) -> dict:
    bbox = table.bbox
    return {
        "id": table.id,
        "bbox": [bbox.left, bbox.bottom, bbox.right, bbox.top] if bbox else None,
        "rows": [
            {"header": row.is_header,
             "cells": [" ".join(token.text.strip() for token in cell.tokens) for cell in row.cells]}
            for row in table.rows
        ],
    }


def run_pipeline(input_path: str, output_path: str, threshold: float = MERGE_PROBABILITY_THRESHOLD,
                 detect_tables: bool = True):
    logger = logging.getLogger("pipeline")
    total_start = time.time()

    logger.info("=" * 60)
    logger.info("STAGE 1: Loading document tree")
    logger.info("=" * 60)
    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)
    try:
        tree = DocumentTree.from_dict(data)
    except ValueError as e:
        logger.error(f"Malformed document tree: {e}")
        sys.exit(1)
    logger.info(f"  Nodes: {len(tree)}")

    logger.info("")
    logger.info("=" * 60)
    logger.info("STAGE 2: Inferring structure")
    logger.info("=" * 60)
    t = time.time()
    result = check_semantic_document(tree, threshold=threshold, detect_tables=detect_tables)
    logger.info(f"  Completed in {time.time() - t:.1f}s")

    logger.info("")
    logger.info("=" * 60)
    logger.info("STAGE 3: Writing result")
    logger.info("=" * 60)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump({"tree": tree.to_dict(), "tables": [_table_to_dict(t) for t in result.tables]},
                  f, ensure_ascii=False, indent=2)

    total_time = time.time() - total_start
    logger.info("")
    logger.info("=" * 60)
    logger.info("CHECK COMPLETE")
    logger.info("=" * 60)
    logger.info(f"  Tables found: {len(result.tables)}")
    logger.info(f"  Output file:  {os.path.abspath(output_path)}")
    logger.info(f"  Total time:   {total_time:.1f}s")


def main():
    parser = argparse.ArgumentParser(
        description="Infer paragraphs, headings, captions, lists and tables from an extracted page tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n  python main.py -i page_tree.json -o structure.json\n  python main.py -i page_tree.json -o structure.json --no-tables -v")
    parser.add_argument("-i", "--input", required=True, help="Path to the extracted tree (JSON)")
    parser.add_argument("-o", "--output", required=True, help="Path for the output structure (JSON)")
    parser.add_argument("--threshold", type=float, default=MERGE_PROBABILITY_THRESHOLD,
                        help=f"Heading/caption promotion threshold (default: {MERGE_PROBABILITY_THRESHOLD})")
    parser.add_argument("--no-tables", action="store_true", help="Skip table detection")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()
    setup_logging(args.verbose)
    if not os.path.isfile(args.input):
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    output = args.output
    if not output.lower().endswith(".json"):
        output += ".json"
    run_pipeline(input_path=args.input, output_path=output, threshold=args.threshold,
                 detect_tables=not args.no_tables)


if __name__ == "__main__":
    main()
