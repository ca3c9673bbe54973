# Overview: Pytest coverage for document number allocation.

"""
Document numbering tests.

Numbers look like <PREFIX>-<STORE?>-<YYYYMMDD>-<SEQ>. Purchases count per
store and embed the store tag; every other kind shares one counter per day.
The counter is consumed inside the document's transaction, so a rolled-back
document does not burn a number.
"""

from datetime import date

import pytest

from backoffice.errors import InsufficientStockError
from backoffice.extensions import db
from backoffice.models import DocumentSequence
from backoffice.services import document_service
from backoffice.services.document_service import next_document_number
from backoffice.services.purchase_service import create_purchase
from backoffice.services.sale_service import create_sale
from backoffice.time_utils import business_date
from conftest import set_stock


def today() -> str:
    return business_date().strftime("%Y%m%d")


class TestAllocator:

    def test_first_number_of_the_day(self, db_session, store_a1):
        number = next_document_number(document_service.SALE, store_a1, date(2026, 3, 5))
        db_session.commit()
        assert number == "SAL-20260305-0001"

    def test_sequence_increments(self, db_session, store_a1):
        day = date(2026, 3, 5)
        first = next_document_number(document_service.TRANSFER, store_a1, day)
        second = next_document_number(document_service.TRANSFER, store_a1, day)
        db_session.commit()
        assert (first, second) == ("TRF-20260305-0001", "TRF-20260305-0002")

    def test_sequence_resets_each_day(self, db_session, store_a1):
        next_document_number(document_service.SALE, store_a1, date(2026, 3, 5))
        number = next_document_number(document_service.SALE, store_a1, date(2026, 3, 6))
        db_session.commit()
        assert number == "SAL-20260306-0001"

    def test_purchase_numbers_are_per_store(self, db_session, store_a1, store_a2):
        day = date(2026, 3, 5)
        a1 = next_document_number(document_service.PURCHASE, store_a1, day)
        a2 = next_document_number(document_service.PURCHASE, store_a2, day)
        a1_again = next_document_number(document_service.PURCHASE, store_a1, day)
        db_session.commit()

        assert a1 == "PUR-MAI-20260305-0001"
        assert a2 == "PUR-HAR-20260305-0001"
        assert a1_again == "PUR-MAI-20260305-0002"

    def test_global_kinds_share_counter_across_stores(self, db_session, store_a1, store_a2):
        day = date(2026, 3, 5)
        first = next_document_number(document_service.SALE_RETURN, store_a1, day)
        second = next_document_number(document_service.SALE_RETURN, store_a2, day)
        db_session.commit()
        assert first == "RET-20260305-0001"
        assert second == "RET-20260305-0002"

    def test_global_kinds_share_counter_across_companies(self, db_session, store_a1, store_b1):
        day = date(2026, 3, 5)
        first = next_document_number(document_service.SALE, store_a1, day)
        second = next_document_number(document_service.SALE, store_b1, day)
        db_session.commit()
        assert (first, second) == ("SAL-20260305-0001", "SAL-20260305-0002")

    def test_same_month_days_never_collide(self, db_session, store_a1):
        numbers = {
            next_document_number(document_service.PURCHASE, store_a1, date(2026, 3, day))
            for day in (5, 6, 7)
        }
        db_session.commit()
        assert numbers == {"PUR-MAI-20260305-0001", "PUR-MAI-20260306-0001", "PUR-MAI-20260307-0001"}

    def test_kinds_do_not_share_counters(self, db_session, store_a1):
        day = date(2026, 3, 5)
        sale = next_document_number(document_service.SALE, store_a1, day)
        pret = next_document_number(document_service.PURCHASE_RETURN, store_a1, day)
        db_session.commit()
        assert sale.endswith("-0001")
        assert pret == "PRET-20260305-0001"

    def test_rollback_releases_number(self, db_session, store_a1):
        day = date(2026, 3, 5)
        next_document_number(document_service.SALE, store_a1, day)
        db_session.rollback()

        number = next_document_number(document_service.SALE, store_a1, day)
        db_session.commit()
        assert number == "SAL-20260305-0001"

    def test_counter_row_tracks_next_value(self, db_session, store_a1):
        day = date(2026, 3, 5)
        for _ in range(3):
            next_document_number(document_service.SALE, store_a1, day)
        db_session.commit()

        seq = db.session.query(DocumentSequence).filter_by(document_type="SALE", business_date=day).one()
        assert seq.scope_key == document_service.GLOBAL_SCOPE
        assert seq.next_number == 4


class TestDocumentsGetNumbers:

    def test_purchases_are_numbered_in_order(self, db_session, owner_a, store_a1, vendor_a, product_x):
        payload = {
            "store_id": store_a1.id,
            "vendor_id": vendor_a.id,
            "items": [{"product_id": product_x.id, "quantity": 1, "unit_price": 1}],
        }
        first = create_purchase(payload, owner_a)
        second = create_purchase(payload, owner_a)

        assert first.document_number == f"PUR-MAI-{today()}-0001"
        assert second.document_number == f"PUR-MAI-{today()}-0002"

    def test_failed_sale_does_not_consume_number(self, db_session, owner_a, store_a1, product_x):
        set_stock(product_x, store_a1, 5)
        too_many = {
            "store_id": store_a1.id,
            "items": [{"product_id": product_x.id, "quantity": 50, "unit_price": 8}],
        }
        with pytest.raises(InsufficientStockError):
            create_sale(too_many, owner_a)

        ok = create_sale(
            {"store_id": store_a1.id, "items": [{"product_id": product_x.id, "quantity": 1, "unit_price": 8}]},
            owner_a,
        )
        assert ok.document_number == f"SAL-{today()}-0001"
