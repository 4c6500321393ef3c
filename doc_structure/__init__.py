"""
Document Structure Inference

Infers paragraphs, spans, headings, captions, lists and tables from a tree of
extracted text chunks, images and line art, scoring every reclassified node.
"""

__version__ = "1.0.0"
