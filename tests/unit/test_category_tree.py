"""카테고리 트리 정규화/탐색 테스트"""
from datetime import datetime, timedelta, timezone

from kl_taxonomy.schemas.taxonomy_schema import CategoryNode
from kl_taxonomy.utils.category_tree import (
    count_nodes,
    dedupe_nodes,
    find_node,
    find_path,
    is_complete,
    is_fresh,
    normalize_category_tree,
    slugify,
)

from tests.fixtures.fakes import make_node, make_tree


class TestNormalize:
    def test_page_state_shape(self):
        """페이지 상태 형태 (identifier / label / subcategories)"""
        raw = [
            {
                "identifier": "161",
                "label": "Elektronik",
                "subcategories": [{"identifier": "176", "label": "Audio &amp; Hifi"}],
            }
        ]
        tree = normalize_category_tree(raw)

        assert tree[0].id == "161"
        assert tree[0].url == "https://www.kleinanzeigen.de/s-kategorie/c161"
        assert tree[0].children[0].name == "Audio & Hifi"

    def test_id_from_url(self):
        tree = normalize_category_tree([{"name": "Autos", "url": "/s-autos/c216"}])
        assert tree[0].id == "216"
        assert tree[0].url == "https://www.kleinanzeigen.de/s-autos/c216"

    def test_static_strings_get_slug_ids(self):
        tree = normalize_category_tree([{"name": "Auto, Rad & Boot", "children": ["Autos", "Boote"]}])

        assert tree[0].id == "auto-rad-and-boot"
        assert tree[0].url == ""
        assert [c.id for c in tree[0].children] == ["autos", "boote"]

    def test_nodes_without_name_are_dropped(self):
        assert normalize_category_tree([{"id": "1"}, {"name": ""}, 42]) == []

    def test_not_a_list(self):
        assert normalize_category_tree({"id": "1", "name": "x"}) == []


def test_slugify():
    assert slugify("Haus & Garten") == "haus-and-garten"
    assert slugify("  Familie, Kind & Baby ") == "familie-kind-and-baby"


class TestLookup:
    def test_find_nested_node(self, sample_tree):
        node = find_node(sample_tree, target_id="280")
        assert node is not None and node.name == "Zubehör"

    def test_find_by_url(self, sample_tree):
        node = find_node(sample_tree, target_url="https://www.kleinanzeigen.de/s-kategorie/c173/")
        assert node is not None and node.id == "173"

    def test_prefers_node_with_more_children(self):
        tree = [make_node("161", "Elektronik"), make_node("x", "Wrapper", [make_node("161", "Elektronik", [make_node("176", "Audio")])])]
        assert len(find_node(tree, target_id="161").children) == 1

    def test_find_path(self, sample_tree):
        assert [n.id for n in find_path(sample_tree, "280")] == ["161", "173", "280"]
        assert find_path(sample_tree, "999") == []

    def test_count_nodes(self, sample_tree):
        assert count_nodes(sample_tree) == 11


class TestDedupe:
    def test_by_id_and_name(self):
        nodes = [
            CategoryNode(id="1", name="A"),
            CategoryNode(id="1", name="A", url="https://x"),
            CategoryNode(id="1", name="B"),
        ]
        result = dedupe_nodes(nodes)

        assert [(n.id, n.name) for n in result] == [("1", "A"), ("1", "B")]
        assert result[0].url == ""


class TestCompleteness:
    def test_complete_tree(self):
        assert is_complete(make_tree(8)) is True

    def test_too_few_roots(self):
        assert is_complete(make_tree(7)) is False

    def test_requires_numeric_root(self):
        slug_tree = [make_node(f"root-{i}", f"Root {i}") for i in range(10)]
        assert is_complete(slug_tree) is False

    def test_custom_minimum(self):
        assert is_complete(make_tree(3), min_roots=3) is True


class TestFreshness:
    def test_fresh_and_stale(self):
        now = datetime(2026, 1, 2, tzinfo=timezone.utc)
        assert is_fresh(now - timedelta(hours=1), 86400, now) is True
        assert is_fresh(now - timedelta(days=2), 86400, now) is False

    def test_naive_timestamp_is_utc(self):
        now = datetime(2026, 1, 2, tzinfo=timezone.utc)
        assert is_fresh(datetime(2026, 1, 1, 23, 0), 86400, now) is True

    def test_missing(self):
        assert is_fresh(None, 86400) is False
