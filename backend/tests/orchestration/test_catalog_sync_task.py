from __future__ import annotations
import math

import pytest
from sqlalchemy import select

from tests.fakes import ADMIN, MEMBER, OWNER, STRANGER
from wa_hub.core.errors import InternalError, InvalidArgumentError, NotFoundError, PermissionDeniedError
from wa_hub.db.model.catalog import Product, ProductOption
from wa_hub.db.model.media import MediaMetadata
from wa_hub.orchestration.catalog_sync import catalog_sync_task
from wa_hub.orchestration.catalog_sync.catalog_sync_task import (
    delete_catalog_items, enqueue_catalog_sync, get_sync_history, list_catalog_items,
    sync_catalog, sync_inventory, update_item,
)


def _statuses(db, ids):
    db.expire_all()
    rows = db.execute(select(Product).where(Product.id.in_(ids))).scalars().all()
    return {r.id: r.sync_status for r in rows}


def _request_ids(call):
    return [r["data"]["id"] for r in call["requests"]]


# ---------- 批次切分 / 失败隔离 ----------
def test_full_sync_twelve_products_second_batch_times_out(db, business, fake_graph, make_products):
    make_products(business.id, 12)
    fake_graph.catalog.fail_on[2] = "timeout"

    result = sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)

    assert [len(c["requests"]) for c in fake_graph.catalog.calls] == [10, 2]
    assert result.synced == 10
    assert result.failed == 2
    assert result.batches == 2
    assert result.errors == [
        {"item_id": "p11", "error": "timeout"},
        {"item_id": "p12", "error": "timeout"},
    ]

    statuses = _statuses(db, [f"p{i}" for i in range(1, 13)])
    assert all(statuses[f"p{i}"] == "synced" for i in range(1, 11))
    assert statuses["p11"] == statuses["p12"] == "error"
    db.expire_all()
    assert db.get(Product, "p11").sync_error == "timeout"
    assert db.get(Product, "p1").last_synced is not None


@pytest.mark.parametrize("count,fail_call", [(25, 2), (7, 1), (30, 3)])
def test_injected_failure_marks_only_that_batch(db, business, fake_graph, make_products, count, fail_call):
    make_products(business.id, count)
    fake_graph.catalog.fail_on[fail_call] = "boom"

    result = sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)

    assert len(fake_graph.catalog.calls) == math.ceil(count / 10)
    failed_ids = {f"p{i}" for i in range((fail_call - 1) * 10 + 1, min(fail_call * 10, count) + 1)}
    assert {e["item_id"] for e in result.errors} == failed_ids
    statuses = _statuses(db, [f"p{i}" for i in range(1, count + 1)])
    assert {k for k, v in statuses.items() if v == "error"} == failed_ids
    assert result.synced + result.failed == count


def test_empty_selection_makes_no_calls(db, business, fake_graph):
    result = sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)
    assert fake_graph.catalog.calls == []
    assert result.to_dict()["synced_products"] == 0


# ---------- 选择策略 ----------
def test_incremental_only_picks_pending_and_error(db, business, fake_graph, make_products):
    make_products(business.id, 3, sync_status="synced")
    make_products(business.id, 2, start=4, sync_status="error")
    make_products(business.id, 2, start=6)

    result = sync_catalog(db, MEMBER, business.id, "incremental", graph=fake_graph)

    assert result.synced == 4
    assert sorted(_request_ids(fake_graph.catalog.calls[0])) == sorted(
        ["product_4_p4", "product_5_p5", "product_6_p6", "product_7_p7"]
    )


def test_specific_with_many_ids_returns_union_without_duplicates(db, business, other_business, fake_graph, make_products):
    make_products(business.id, 40)
    make_products(other_business.id, 2, prefix="x")
    ids = [f"p{i}" for i in range(1, 41)] + ["p3", "p7", "missing-1", "x1"]

    result = sync_catalog(db, ADMIN, business.id, "specific", ids, graph=fake_graph)

    sent = [rid for call in fake_graph.catalog.calls for rid in _request_ids(call)]
    assert len(sent) == len(set(sent)) == 40
    assert result.synced == 40


def test_specific_without_ids_is_rejected(db, business, fake_graph):
    with pytest.raises(InvalidArgumentError):
        sync_catalog(db, OWNER, business.id, "specific", [], graph=fake_graph)


def test_unknown_mode_and_kind_are_rejected(db, business, fake_graph):
    with pytest.raises(InvalidArgumentError):
        sync_catalog(db, OWNER, business.id, "everything", graph=fake_graph)
    with pytest.raises(InvalidArgumentError):
        sync_catalog(db, OWNER, business.id, "full", item_kind="bundle", graph=fake_graph)


def test_stranger_is_denied_before_any_call(db, business, fake_graph, make_products):
    make_products(business.id, 2)
    with pytest.raises(PermissionDeniedError):
        sync_catalog(db, STRANGER, business.id, "full", graph=fake_graph)
    assert fake_graph.catalog.calls == []


# ---------- retailer id ----------
def test_synthesized_retailer_id_is_written_once(db, business, fake_graph, make_products):
    make_products(business.id, 1, name="Jollof Spice!")
    make_products(business.id, 1, start=2, retailer_id="SKU-EXISTING")

    sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)
    db.expire_all()
    assert db.get(Product, "p1").retailer_id == "jollof_spice_p1"
    assert db.get(Product, "p2").retailer_id == "SKU-EXISTING"
    assert _request_ids(fake_graph.catalog.calls[0]) == ["jollof_spice_p1", "SKU-EXISTING"]

    # 改名后再同步：已存的 id 不变
    p1 = db.get(Product, "p1")
    p1.name = "Renamed"
    db.commit()
    sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)
    db.expire_all()
    assert db.get(Product, "p1").retailer_id == "jollof_spice_p1"
    assert _request_ids(fake_graph.catalog.calls[1])[0] == "jollof_spice_p1"


def test_same_named_products_get_distinct_ids(db, business, fake_graph, make_products):
    make_products(business.id, 2, name="Shito")

    result = sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)

    assert result.synced == 2
    assert _request_ids(fake_graph.catalog.calls[0]) == ["shito_p1", "shito_p2"]
    db.expire_all()
    assert [db.get(Product, i).retailer_id for i in ("p1", "p2")] == ["shito_p1", "shito_p2"]


@pytest.mark.parametrize("name", ["日本茶", "!!!"])
def test_name_without_usable_characters_falls_back_to_item_id(db, business, fake_graph, make_products, name):
    make_products(business.id, 1, name=name)

    sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)

    assert _request_ids(fake_graph.catalog.calls[0]) == ["p1"]
    db.expire_all()
    assert db.get(Product, "p1").retailer_id == "p1"


def test_option_and_product_with_matching_slug_do_not_collide(db, business, fake_graph, make_products, make_option):
    make_products(business.id, 1, name="A")
    make_products(business.id, 1, start=2, name="A B")
    make_option(business.id, "p1", "o1", "B")

    sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)
    sync_catalog(db, OWNER, business.id, "full", item_kind="product_option", graph=fake_graph)

    sent = [rid for call in fake_graph.catalog.calls for rid in _request_ids(call)]
    assert sent == ["a_p1", "a_b_p2", "a_b_o1"]


def test_option_payload_uses_parent(db, business, fake_graph, make_products, make_option):
    make_products(business.id, 1, name="Jollof Spice", brand="Mama's", description="Smoky blend")
    make_option(business.id, "p1", "o1", "Large 500g", stock=0)

    result = sync_catalog(db, OWNER, business.id, "full", item_kind="product_option", graph=fake_graph)

    assert result.synced == 1
    data = fake_graph.catalog.calls[0]["requests"][0]["data"]
    assert data["id"] == "jollof_spice_large_500g_o1"
    assert data["title"] == "Jollof Spice - Large 500g"
    assert data["description"] == "Smoky blend"
    assert data["availability"] == "out of stock"
    assert data["brand"] == "Default Brand"
    assert data["category"] == "Spices"
    assert data["price"] == "2000 GHS"
    assert data["link"].endswith("/product-options/o1")
    db.expire_all()
    assert db.get(ProductOption, "o1").sku == "jollof_spice_large_500g_o1"


# ---------- 媒体 ----------
def test_media_is_uploaded_before_formatting(db, business, fake_graph, make_products, image_downloader):
    make_products(business.id, 1, image_url="https://cdn.example.com/p1.jpg")

    sync_catalog(db, OWNER, business.id, "full", graph=fake_graph, downloader=image_downloader)

    data = fake_graph.catalog.calls[0]["requests"][0]["data"]
    assert data["image"][0]["url"].endswith("/media-1")
    db.expire_all()
    assert db.get(Product, "p1").whatsapp_image_id == "media-1"
    assert db.execute(select(MediaMetadata)).scalars().one().reference_id == "p1"


def test_media_failure_is_swallowed(db, business, fake_graph, make_products):
    make_products(business.id, 2, image_url="https://cdn.example.com/broken.jpg")

    def _broken(url):
        raise OSError("connection reset")

    result = sync_catalog(db, OWNER, business.id, "full", graph=fake_graph, downloader=_broken)

    assert result.synced == 2
    assert all("image" not in r["data"] for r in fake_graph.catalog.calls[0]["requests"])
    assert db.execute(select(MediaMetadata)).scalars().all() == []


# ---------- 单个更新 ----------
def test_update_item_sends_requested_fields_only(db, business, fake_graph, make_products):
    make_products(business.id, 1, retailer_id="SKU-1", stock=0)

    out = update_item(db, OWNER, business.id, "p1", ["price", "availability"], graph=fake_graph)

    assert out["retailer_id"] == "SKU-1"
    data = fake_graph.catalog.calls[0]["requests"][0]["data"]
    assert data == {"id": "SKU-1", "price": "1250 GHS", "availability": "out of stock"}
    assert _statuses(db, ["p1"])["p1"] == "synced"


def test_update_item_failure_records_error_and_raises(db, business, fake_graph, make_products):
    make_products(business.id, 1)
    fake_graph.catalog.fail_on[1] = "catalog down"

    with pytest.raises(InternalError):
        update_item(db, OWNER, business.id, "p1", ["name"], graph=fake_graph)

    db.expire_all()
    row = db.get(Product, "p1")
    assert row.sync_status == "error"
    assert row.sync_error == "catalog down"


def test_update_item_validation(db, business, other_business, fake_graph, make_products):
    make_products(other_business.id, 1, prefix="x")
    with pytest.raises(InvalidArgumentError):
        update_item(db, OWNER, business.id, "x1", ["colour"], graph=fake_graph)
    with pytest.raises(NotFoundError):
        update_item(db, OWNER, business.id, "x1", ["name"], graph=fake_graph)
    assert fake_graph.catalog.calls == []


# ---------- 库存 / 删除 / 查询 ----------
def test_sync_inventory_sends_availability_and_optional_price(db, business, fake_graph, make_products):
    make_products(business.id, 3, stock=0)

    result = sync_inventory(db, OWNER, business.id, update_prices=True, graph=fake_graph)

    assert result.synced == 3
    for req in fake_graph.catalog.calls[0]["requests"]:
        assert set(req["data"]) == {"id", "availability", "price"}
        assert req["data"]["availability"] == "out of stock"

    history = get_sync_history(db, OWNER, business.id)
    assert history[0]["event_type"] == "inventory_sync"
    assert history[0]["data"]["products_updated"] == 3


def test_delete_catalog_items_resets_status(db, business, fake_graph, make_products):
    make_products(business.id, 2, sync_status="synced", retailer_id="SKU")

    out = delete_catalog_items(db, OWNER, business.id, ["p1", "p2"], graph=fake_graph)

    assert out["deleted"] == 2
    req = fake_graph.catalog.calls[0]["requests"][0]
    assert req == {"method": "DELETE", "data": {"id": "SKU"}}
    assert set(_statuses(db, ["p1", "p2"]).values()) == {"pending"}


def test_list_catalog_items_and_history(db, business, fake_graph, make_products):
    fake_graph.catalog.remote_items = [{"id": "1", "retailer_id": "a"}, {"id": "2", "retailer_id": "b"}]
    assert len(list_catalog_items(db, OWNER, business.id, limit=1, graph=fake_graph)) == 1

    make_products(business.id, 1)
    sync_catalog(db, OWNER, business.id, "full", graph=fake_graph)
    events = get_sync_history(db, OWNER, business.id)
    assert events[0]["event_type"] == "catalog_sync"
    assert events[0]["data"] == {
        "sync_type": "full", "item_kind": "product", "products_synced": 1, "errors_count": 0,
    }


# ---------- Celery 入口（inline） ----------
def test_enqueue_runs_inline(monkeypatch, session_factory, db, business, fake_graph, make_products):
    make_products(business.id, 3)
    monkeypatch.setattr(catalog_sync_task, "SessionLocal", session_factory)
    monkeypatch.setattr(catalog_sync_task, "build_graph", lambda _db, _bid: fake_graph)
    monkeypatch.setattr(catalog_sync_task.settings, "SYNC_TASKS_INLINE", True, raising=False)

    out = enqueue_catalog_sync(OWNER, business.id, "full")
    assert out["synced_products"] == 3

    rejected = enqueue_catalog_sync(STRANGER, business.id, "full")
    assert rejected["code"] == "permission-denied"
