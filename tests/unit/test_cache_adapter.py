"""CacheAdapter 유닛 테스트 (모델 ↔ JSON 변환)"""
import pytest

from kl_taxonomy.engine.cache_adapter import CacheAdapter
from kl_taxonomy.schemas.taxonomy_schema import CategoryNode, FieldDescriptor, FieldKind
from kl_taxonomy.services.impl.cache_service import CacheStore

from tests.fixtures.fakes import MemoryPersistence, make_field, make_node


@pytest.fixture
def children_store(fake_clock):
    return CacheStore("children", MemoryPersistence(), "children", ttl_s=3600, empty_ttl_s=60, debounce_s=60, clock=fake_clock)


@pytest.mark.asyncio
async def test_set_and_get_models(children_store):
    adapter = CacheAdapter(children_store, CategoryNode)
    await adapter.set("id:161", [make_node("176", "Audio & Hifi", [make_node("172", "Lautsprecher")])])

    cached = await adapter.get("id:161")

    assert cached is not None
    assert cached.items[0].children[0].id == "172"
    assert cached.is_empty is False
    await children_store.shutdown()


@pytest.mark.asyncio
async def test_field_kind_serialized_as_string(children_store):
    adapter = CacheAdapter(children_store, FieldDescriptor)
    await adapter.set("id:176", [make_field()])

    raw = children_store.get("id:176").value[0]
    assert raw["kind"] == "select"
    assert (await adapter.get("id:176")).items[0].kind == FieldKind.SELECT
    await children_store.shutdown()


@pytest.mark.asyncio
async def test_empty_entry_is_returned(children_store):
    adapter = CacheAdapter(children_store, CategoryNode)
    await adapter.set("id:999", [])

    cached = await adapter.get("id:999")
    assert cached is not None and cached.is_empty
    await children_store.shutdown()


@pytest.mark.asyncio
async def test_malformed_entry_is_dropped(children_store):
    """모델 검증 실패 항목은 삭제 후 미스"""
    children_store.set("id:161", [{"id": "", "name": "kaputt"}])
    adapter = CacheAdapter(children_store, CategoryNode)

    assert await adapter.get("id:161") is None
    assert children_store.get("id:161") is None
    await children_store.shutdown()


@pytest.mark.asyncio
async def test_invalid_key(children_store):
    adapter = CacheAdapter(children_store, CategoryNode)
    assert await adapter.get("") is None
    assert await adapter.set("", []) is False
