from datetime import timedelta

import pytest
from sqlalchemy import select

from tests.fakes import OWNER, STRANGER
from wa_hub.core.errors import InvalidArgumentError, MediaUploadError, PermissionDeniedError
from wa_hub.db.model.catalog import Product
from wa_hub.db.model.media import MediaMetadata
from wa_hub.orchestration.media import media_pipeline
from wa_hub.orchestration.media.media_pipeline import (
    batch_upload_media, cleanup_all_businesses_inline, cleanup_unused_media, ensure_media,
    get_media_by_reference, get_media_stats, refresh_expired_media, upload_media,
)
from wa_hub.utils.clock import now_utc


def _media_rows(db, business_id):
    db.expire_all()
    stmt = select(MediaMetadata).where(MediaMetadata.business_id == business_id).order_by(MediaMetadata.created_at)
    return list(db.execute(stmt).scalars())


def _seed_media(db, business_id, *, status="uploaded", expires_in_days=30, age_days=0, reference_id="p1", media_id="old-media"):
    row = MediaMetadata(
        business_id=business_id,
        whatsapp_media_id=media_id,
        original_url="https://cdn.example.com/p1.png",
        purpose="product",
        reference_id=reference_id,
        reference_type="product",
        file_size=100,
        status=status,
        uploaded_at=now_utc() - timedelta(days=age_days),
        expires_at=now_utc() + timedelta(days=expires_in_days),
        created_at=now_utc() - timedelta(days=age_days),
    )
    db.add(row)
    db.commit()
    return row


# ---------- ensure ----------
def test_ensure_media_writes_metadata_and_item_reference(db, business, make_products, fake_graph, image_downloader):
    make_products(business.id, 1)

    media_id = ensure_media(
        db, fake_graph, business.id, "p1", "https://cdn.example.com/p1.png", "product",
        downloader=image_downloader,
    )

    rows = _media_rows(db, business.id)
    assert media_id == "media-1"
    assert len(rows) == 1
    row = rows[0]
    assert row.status == "uploaded"
    assert row.reference_type == "product"
    assert row.mime_type == "image/jpeg"
    assert row.file_size == fake_graph.media.uploads[0]["size"]
    assert (row.expires_at - row.uploaded_at) == timedelta(days=30)
    assert db.get(Product, "p1").whatsapp_image_id == "media-1"


def test_ensure_media_failure_leaves_nothing(db, business, make_products, fake_graph, image_downloader):
    make_products(business.id, 1)
    fake_graph.media.fail = True

    with pytest.raises(MediaUploadError, match="media upload failed"):
        ensure_media(db, fake_graph, business.id, "p1", "https://cdn.example.com/p1.png", "product", downloader=image_downloader)

    assert _media_rows(db, business.id) == []
    assert db.get(Product, "p1").whatsapp_image_id is None


def test_upload_media_checks_access_and_purpose(db, business, fake_graph, image_downloader):
    with pytest.raises(PermissionDeniedError):
        upload_media(db, STRANGER, business.id, "https://x/y.png", "product", graph=fake_graph, downloader=image_downloader)
    with pytest.raises(InvalidArgumentError):
        upload_media(db, OWNER, business.id, "https://x/y.png", "poster", graph=fake_graph, downloader=image_downloader)
    with pytest.raises(InvalidArgumentError):
        upload_media(db, OWNER, business.id, "not-a-url", "product", graph=fake_graph, downloader=image_downloader)

    out = upload_media(db, OWNER, business.id, "https://x/banner.png", "category", "cat-1", graph=fake_graph, downloader=image_downloader)
    assert out == {"media_id": "media-1", "purpose": "category", "reference_id": "cat-1"}


def test_batch_upload_records_each_item(db, business, fake_graph, image_downloader):
    items = [
        {"image_url": f"https://cdn.example.com/{i}.png", "purpose": "product", "reference_id": f"p{i}"}
        for i in range(1, 7)
    ]
    items[2]["purpose"] = "poster"

    out = batch_upload_media(db, OWNER, business.id, items, graph=fake_graph, downloader=image_downloader)

    assert out["successful"] == 5
    assert out["failed"] == 1
    assert [r["success"] for r in out["results"]] == [True, True, False, True, True, True]
    assert "unknown media purpose" in out["results"][2]["error"]


# ---------- refresh ----------
def test_refresh_replaces_media_expiring_within_buffer(db, business, make_products, fake_graph, image_downloader):
    make_products(business.id, 1, whatsapp_image_id="old-media")
    old = _seed_media(db, business.id, expires_in_days=5)
    _seed_media(db, business.id, expires_in_days=20, reference_id="p9", media_id="fresh")

    out = refresh_expired_media(db, OWNER, business.id, 7, graph=fake_graph, downloader=image_downloader)

    assert out == {"refreshed": 1, "failed": 0, "errors": []}
    rows = {r.whatsapp_media_id: r for r in _media_rows(db, business.id)}
    assert rows["old-media"].status == "expired"
    assert rows["media-1"].status == "uploaded"
    assert rows["fresh"].status == "uploaded"
    assert db.get(Product, "p1").whatsapp_image_id == "media-1"
    assert old.id in {r.id for r in rows.values()}


def test_refresh_failure_keeps_old_record_usable(db, business, make_products, fake_graph, image_downloader):
    make_products(business.id, 1, whatsapp_image_id="old-media")
    old = _seed_media(db, business.id, expires_in_days=2)
    fake_graph.media.fail = True

    out = refresh_expired_media(db, OWNER, business.id, graph=fake_graph, downloader=image_downloader)

    assert out["refreshed"] == 0
    assert out["failed"] == 1
    assert out["errors"][0]["media_id"] == old.id
    rows = _media_rows(db, business.id)
    assert [r.status for r in rows] == ["uploaded"]
    assert db.get(Product, "p1").whatsapp_image_id == "old-media"


def test_refresh_rejects_negative_buffer(db, business, fake_graph):
    with pytest.raises(InvalidArgumentError):
        refresh_expired_media(db, OWNER, business.id, -1, graph=fake_graph)


# ---------- cleanup ----------
def test_cleanup_deletes_only_old_expired(db, business):
    _seed_media(db, business.id, status="expired", age_days=40, media_id="gone")
    _seed_media(db, business.id, status="expired", age_days=5, media_id="recent")
    _seed_media(db, business.id, status="uploaded", age_days=60, media_id="live")

    assert cleanup_unused_media(db, OWNER, business.id) == {"deleted": 1}
    assert sorted(r.whatsapp_media_id for r in _media_rows(db, business.id)) == ["live", "recent"]


def test_scheduled_cleanup_walks_active_businesses(db, session_factory, business):
    _seed_media(db, business.id, status="expired", age_days=40)

    out = cleanup_all_businesses_inline(session_factory)

    assert out == {business.id: 1}


def test_scheduled_refresh_uses_business_graph(db, session_factory, business, make_products, fake_graph, monkeypatch):
    make_products(business.id, 1)
    _seed_media(db, business.id, expires_in_days=1)
    monkeypatch.setattr(media_pipeline, "build_graph", lambda _db, _bid: fake_graph)
    monkeypatch.setattr(media_pipeline, "prepare_image", lambda url, purpose, downloader=None: (b"jpeg", 10))

    out = media_pipeline.refresh_all_businesses_inline(session_factory)

    assert out[business.id]["refreshed"] == 1


# ---------- stats / lookup ----------
def test_stats_and_reference_lookup(db, business, other_business):
    _seed_media(db, business.id, media_id="a")
    _seed_media(db, business.id, status="expired", media_id="b")
    _seed_media(db, other_business.id, media_id="c")

    stats = get_media_stats(db, OWNER, business.id)
    assert stats["total"] == 2
    assert stats["uploaded"] == 1
    assert stats["expired"] == 1
    assert stats["total_size"] == 200
    assert stats["by_purpose"] == {"product": 2}

    found = get_media_by_reference(db, OWNER, business.id, "p1", "product")
    assert sorted(m["media_id"] for m in found) == ["a", "b"]
    with pytest.raises(InvalidArgumentError):
        get_media_by_reference(db, OWNER, business.id, "")
