from sqlalchemy import select

from wa_hub.db.model.catalog import Product
from wa_hub.repository.catalog_repo import (
    load_items_by_ids, mark_batch_error, mark_batch_synced, persist_synthesized_skus,
    select_items_for_sync,
)


def test_load_by_ids_chunks_and_keeps_order(db, business, make_products):
    make_products(business.id, 10)
    ids = ["p9", "p2", "p2", "nope", "p5", "p1", "p10", "p3", "p9"]

    rows = load_items_by_ids(db, Product, business.id, ids, chunk_size=3)

    assert [r.id for r in rows] == ["p9", "p2", "p5", "p1", "p10", "p3"]


def test_incremental_is_subset_of_full(db, business, make_products):
    make_products(business.id, 2, sync_status="synced")
    make_products(business.id, 2, start=3, sync_status="error")
    make_products(business.id, 1, start=5)

    full = {r.id for r in select_items_for_sync(db, Product, business.id, "full")}
    incremental = {r.id for r in select_items_for_sync(db, Product, business.id, "incremental")}

    assert incremental <= full
    assert incremental == {"p3", "p4", "p5"}


def test_status_writes_are_batch_updates(db, business, make_products):
    make_products(business.id, 3)
    mark_batch_error(db, Product, ["p1", "p2"], "bad")
    mark_batch_synced(db, Product, ["p3"])
    db.commit()
    db.expire_all()

    rows = {r.id: r for r in db.execute(select(Product)).scalars()}
    assert rows["p1"].sync_status == rows["p2"].sync_status == "error"
    assert rows["p2"].sync_error == "bad"
    assert rows["p3"].sync_status == "synced" and rows["p3"].last_synced is not None


def test_sku_write_is_compare_and_set(db, business, make_products):
    make_products(business.id, 1)
    make_products(business.id, 1, start=2, retailer_id="")
    make_products(business.id, 1, start=3, retailer_id="KEEP")

    written = persist_synthesized_skus(db, Product, {"p1": "one", "p2": "two", "p3": "three"})
    db.commit()
    again = persist_synthesized_skus(db, Product, {"p1": "other"})
    db.commit()
    db.expire_all()

    assert written == 2
    assert again == 0
    assert [db.get(Product, i).retailer_id for i in ("p1", "p2", "p3")] == ["one", "two", "KEEP"]
