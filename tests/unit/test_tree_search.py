"""중첩 상태 탐색 / 상태 그래프 / 위치 클러스터링 테스트"""

from kl_taxonomy.utils.clustering import PositionClusteringStrategy, PositionedItem, cluster_by_position
from kl_taxonomy.utils.tree_search import build_state_graph, find_category_collection, find_first


class TestFindFirst:
    def test_prefers_keys(self):
        state = {"other": {"target": 1}, "wanted": {"target": 2}}
        found = find_first(state, lambda v, k: isinstance(v, dict) and "target" in v, prefer_keys=("wanted",))
        assert found == {"target": 2}

    def test_cycle_safe(self):
        state: dict = {"a": {}}
        state["a"]["self"] = state
        assert find_first(state, lambda v, k: v == "missing") is None

    def test_node_budget(self):
        deep = {"x": list(range(1000))}
        assert find_first(deep, lambda v, k: v == 999, max_nodes=10) is None


class TestCategoryCollection:
    def test_next_data_categories(self):
        state = {
            "props": {
                "pageProps": {
                    "categories": [
                        {"id": "161", "name": "Elektronik", "children": [{"id": "176", "name": "Audio & Hifi"}]},
                        {"id": "102", "name": "Jobs"},
                    ]
                }
            }
        }
        collection = find_category_collection(state)
        assert [c["id"] for c in collection] == ["161", "102"]

    def test_single_category_tree_object_is_wrapped(self):
        state = {"view": {"categoryTree": {"id": "161", "name": "Elektronik"}}}
        assert find_category_collection(state) == [{"id": "161", "name": "Elektronik"}]

    def test_ignores_non_category_arrays(self):
        assert find_category_collection({"categories": ["a", "b"]}) is None


class TestStateGraph:
    def test_edges_follow_nearest_category_ancestor(self):
        state = {
            "data": {
                "categoryId": "161",
                "name": "Elektronik",
                "meta": {"list": [{"id": "176", "label": "Audio & Hifi"}, {"id": "173", "label": "Handy"}]},
            }
        }
        graph = build_state_graph(state)

        assert [n.id for n in graph.children_of("161")] == ["176", "173"]
        assert graph.children_of("176") == []

    def test_window_like_objects_are_skipped(self):
        state = {"window": {"document": {}, "navigator": {}, "cat": {"id": "1", "name": "X"}}}
        assert build_state_graph(state).nodes == {}

    def test_id_from_url_value(self):
        state = {"id": "161", "name": "Elektronik", "child": {"url": "/s-autos/c216", "value": "/s-autos/c216", "name": "Autos"}}
        graph = build_state_graph(state)
        assert [n.id for n in graph.children_of("161")] == ["216"]


class TestPositionClustering:
    def test_groups_by_anchor_distance(self):
        items = [PositionedItem("1", "A", x=10), PositionedItem("2", "B", x=40), PositionedItem("3", "C", x=300)]
        clusters = cluster_by_position(items, threshold=60)
        assert [[i.id for i in c.items] for c in clusters] == [["1", "2"], ["3"]]

    def test_rightmost_column_sorted_by_y(self):
        items = [
            PositionedItem("161", "Elektronik", x=20, y=10),
            PositionedItem("173", "Handy", x=320, y=80),
            PositionedItem("176", "Audio", x=310, y=40),
            PositionedItem("176", "Audio", x=330, y=40),
        ]
        selected = PositionClusteringStrategy().select(items, exclude_id="161")
        assert [i.id for i in selected] == ["176", "173"]

    def test_excludes_target(self):
        items = [PositionedItem("161", "Elektronik", x=500)]
        assert PositionClusteringStrategy().select(items, exclude_id="161") == []
