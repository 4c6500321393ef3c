import json
import logging
import sys

import pytest

from doc_structure.checker import check_semantic_document
from doc_structure.models import SemanticType
from doc_structure.tree import DocumentTree
from main import main, run_pipeline


def chunk(text, left, bottom, right):
    return {"chunks": [{"text": text, "bbox": [left, bottom, right, bottom + 10], "font_name": "Helvetica"}]}


GRID = {
    "type": "Div",
    "children": [
        {"children": [chunk("Name", 0, 100, 30), chunk("Age", 60, 100, 80)]},
        {"children": [chunk("Bob", 0, 85, 20), chunk("42", 60, 85, 70)]},
    ],
}


class TestCheckSemanticDocument:

    def test_grid_becomes_table(self):
        tree = DocumentTree.from_dict(GRID)
        result = check_semantic_document(tree)
        assert len(result.tables) == 1
        assert result.tree is tree
        assert tree.root.semantic_type is SemanticType.TABLE
        assert [child.semantic_type for child in tree.children(0)] == [SemanticType.TABLE_HEADER,
                                                                       SemanticType.TABLE_ROW]
        assert tree.nodes[2].semantic_type is SemanticType.SPAN
        assert tree.nodes[2].score == 1.0

    def test_tables_can_be_switched_off(self):
        tree = DocumentTree.from_dict(GRID)
        result = check_semantic_document(tree, detect_tables=False)
        assert result.tables == []
        assert result.table_regions == []
        assert tree.root.semantic_type is SemanticType.PARAGRAPH
        assert result.mapper.semantic_type(0) is SemanticType.PARAGRAPH

    def test_heading_and_paragraph(self):
        tree = DocumentTree.from_dict({
            "type": "Document",
            "children": [
                {"type": "P", "children": [
                    {"chunks": [{"text": "Results", "bbox": [0, 700, 60, 716], "font_size": 16}]},
                ]},
                {"type": "P", "children": [
                    {"lines": [
                        [{"text": "The first line of the body", "bbox": [0, 680, 200, 690]}],
                        [{"text": "and its second line.", "bbox": [0, 668, 150, 678]}],
                    ]},
                ]},
            ],
        })
        check_semantic_document(tree, detect_tables=False)
        assert tree.nodes[1].semantic_type is SemanticType.HEADING
        assert tree.nodes[3].semantic_type is SemanticType.PARAGRAPH
        assert tree.nodes[4].semantic_type is SemanticType.SPAN

    def test_empty_tree_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = check_semantic_document(DocumentTree())
        assert result.tables == []
        assert "Empty document tree" in caplog.text


class TestCli:

    def test_run_pipeline_writes_tree_and_tables(self, tmp_path):
        source = tmp_path / "page.json"
        source.write_text(json.dumps(GRID), encoding="utf-8")
        target = tmp_path / "structure.json"
        run_pipeline(str(source), str(target))

        output = json.loads(target.read_text(encoding="utf-8"))
        assert output["tree"]["type"] == "Table"
        assert output["tree"]["initial_type"] == "Div"
        assert output["tree"]["children"][0]["type"] == "TH"
        assert output["tables"] == [{
            "id": 1,
            "bbox": [0, 85, 80, 110],
            "rows": [{"header": True, "cells": ["Name", "Age"]},
                     {"header": False, "cells": ["Bob", "42"]}],
        }]

    def test_run_pipeline_rejects_malformed_tree(self, tmp_path):
        source = tmp_path / "page.json"
        source.write_text(json.dumps({"type": "Unknown"}), encoding="utf-8")
        with pytest.raises(SystemExit) as excinfo:
            run_pipeline(str(source), str(tmp_path / "out.json"))
        assert excinfo.value.code == 1

    def test_main_missing_input_exits(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["main.py", "-i", str(tmp_path / "missing.json"),
                                          "-o", str(tmp_path / "out.json")])
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 1

    def test_main_appends_json_suffix(self, tmp_path, monkeypatch):
        source = tmp_path / "page.json"
        source.write_text(json.dumps(GRID), encoding="utf-8")
        monkeypatch.setattr(sys, "argv", ["main.py", "-i", str(source), "-o", str(tmp_path / "out"),
                                          "--no-tables"])
        main()
        output = json.loads((tmp_path / "out.json").read_text(encoding="utf-8"))
        assert output["tables"] == []
        assert output["tree"]["type"] == "P"
