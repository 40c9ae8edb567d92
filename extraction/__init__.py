"""
Documentation extraction engine.

Walks parsed module syntax trees for documentation comments and orders
modules along their imports.
"""

from extraction.models import DocItem, ModuleDoc
from extraction.classifier import Policy, classify, classify_kind
from extraction.traversal import extract_doc_strings, iter_doc_strings
from extraction.extractor import (
    DuplicateSetupError,
    doc_strings_from_module,
    extract_from_module,
)
from extraction.resolver import (
    enable_compilation,
    filter_source_inputs,
    flatten_sccs,
    needs_template_haskell,
    resolve,
    strongly_connected_components,
    top_sort_module_graph,
)
from extraction.pipeline import (
    ExtractError,
    ExtractionCancelled,
    ExtractionResult,
    extract,
    iter_module_docs,
    parse,
    temp_output_dir,
    try_extract,
)
from extraction.util import convert_dos_line_endings

__all__ = [
    # Data models
    "DocItem",
    "ModuleDoc",
    # Classification and walking
    "Policy",
    "classify",
    "classify_kind",
    "extract_doc_strings",
    "iter_doc_strings",
    # Per-module extraction
    "DuplicateSetupError",
    "doc_strings_from_module",
    "extract_from_module",
    # Module graph
    "enable_compilation",
    "filter_source_inputs",
    "flatten_sccs",
    "needs_template_haskell",
    "resolve",
    "strongly_connected_components",
    "top_sort_module_graph",
    # Pipeline
    "ExtractError",
    "ExtractionCancelled",
    "ExtractionResult",
    "extract",
    "iter_module_docs",
    "parse",
    "temp_output_dir",
    "try_extract",
    "convert_dos_line_endings",
]
