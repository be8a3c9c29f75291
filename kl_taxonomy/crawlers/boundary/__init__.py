"""Boundary layer - network-free HTML / form-control parsing"""

from .http_fastpath_parsing import (
    extract_browsebox_lists,
    extract_children_from_listing_html,
    extract_children_from_selection_html,
    extract_embedded_category_tree,
    extract_listing_dom_children,
    is_blocked_html,
    parse_categories_from_html,
    parse_category_links_from_block,
    parse_dom_category_tree,
)
from .field_parsing import has_attribute_control, parse_field_descriptors

__all__ = [
    "extract_browsebox_lists",
    "extract_children_from_listing_html",
    "extract_children_from_selection_html",
    "extract_embedded_category_tree",
    "extract_listing_dom_children",
    "is_blocked_html",
    "parse_categories_from_html",
    "parse_category_links_from_block",
    "parse_dom_category_tree",
    "has_attribute_control",
    "parse_field_descriptors",
]
