# 公共 fixture：每个测试一个文件型 sqlite（线程池测试也能共享）

from __future__ import annotations
from datetime import timedelta
from decimal import Decimal
from typing import List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wa_hub.db.base import Base
import wa_hub.db.model  # noqa: F401
from wa_hub.db.model.catalog import Product, ProductOption
from wa_hub.db.model.order import Order
from wa_hub.repository.business_repo import create_business, upsert_whatsapp_config
from wa_hub.utils.clock import now_utc
from wa_hub.utils.encryption import DEV_PREFIX

from tests.fakes import ADMIN, MEMBER, OWNER, FakeGraph, make_image_bytes


# ---------- DB fixtures ----------
@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'wa_hub_test.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def business(db):
    biz = create_business(db, name="Accra Spice Co", owner_id=OWNER, admin_ids=[ADMIN], member_ids=[MEMBER])
    upsert_whatsapp_config(
        db,
        biz.id,
        phone_number_id="phone-1",
        catalog_id="catalog-1",
        business_account_id="waba-1",
        app_id="app-1",
        access_token=f"{DEV_PREFIX}test-token",
        is_active=True,
    )
    db.commit()
    return biz


@pytest.fixture
def other_business(db):
    biz = create_business(db, name="Kumasi Market", owner_id="owner-2")
    db.commit()
    return biz


@pytest.fixture
def fake_graph():
    return FakeGraph()


@pytest.fixture
def image_downloader():
    content = make_image_bytes()
    seen: List[str] = []

    def _download(url: str) -> bytes:
        seen.append(url)
        return content

    _download.seen = seen
    return _download


@pytest.fixture
def make_products(db):
    """按顺序造商品：id 为 p1..pN，created_at 递增保证选择顺序稳定。"""
    def _make(business_id: str, count: int, *, prefix: str = "p", start: int = 1, **fields) -> List[Product]:
        base = now_utc() - timedelta(hours=1)
        rows = []
        for i in range(start, start + count):
            values = {
                "name": f"Product {i}",
                "price": Decimal("12.50"),
                "stock": 5,
                "category_name": "Spices",
            }
            values.update(fields)
            row = Product(id=f"{prefix}{i}", business_id=business_id, created_at=base + timedelta(seconds=i), **values)
            db.add(row)
            rows.append(row)
        db.commit()
        return rows

    return _make


@pytest.fixture
def make_option(db):
    def _make(business_id: str, product_id: str, option_id: str, name: str, **fields) -> ProductOption:
        values = {"price": Decimal("20.00"), "stock": 3}
        values.update(fields)
        row = ProductOption(id=option_id, business_id=business_id, product_id=product_id, name=name, **values)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_order(db):
    def _make(business_id: str, order_id: str, **fields) -> Order:
        values = {
            "customer_name": "Ama",
            "customer_phone": "0241234567",
            "total": Decimal("1234.5"),
            "status": "processing",
        }
        values.update(fields)
        row = Order(id=order_id, business_id=business_id, **values)
        db.add(row)
        db.commit()
        return row

    return _make
