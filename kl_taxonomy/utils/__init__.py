"""Utilities package - Flat structure"""

from .url_utils import (
    build_category_url,
    build_selection_url,
    extract_category_id,
    extract_category_identifier,
    extract_numeric_id,
    extract_path_ids,
    normalize_category_url,
    normalize_href,
    parse_category_path,
)
from .category_tree import (
    count_nodes,
    dedupe_nodes,
    find_node,
    find_path,
    is_complete,
    normalize_category_tree,
    slugify,
)

__all__ = [
    "build_category_url",
    "build_selection_url",
    "extract_category_id",
    "extract_category_identifier",
    "extract_numeric_id",
    "extract_path_ids",
    "normalize_category_url",
    "normalize_href",
    "parse_category_path",
    "count_nodes",
    "dedupe_nodes",
    "find_node",
    "find_path",
    "is_complete",
    "normalize_category_tree",
    "slugify",
]
