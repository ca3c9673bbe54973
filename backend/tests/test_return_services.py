# Overview: Pytest coverage for purchase returns and sale returns.

from decimal import Decimal

import pytest

from backoffice.errors import ForbiddenError, InsufficientStockError, InvalidInputError, NotFoundError
from backoffice.models import PurchaseReturn, SaleReturn
from backoffice.services import purchase_service, return_service, sale_service
from backoffice.services.document_service import DocumentFilter
from conftest import on_hand, set_stock


@pytest.fixture
def stocked_sale(db_session, owner_a, store_a1, product_x):
    """Purchase of 10 @ 5 followed by a sale of 4 @ 8."""
    set_stock(product_x, store_a1, 10)
    return sale_service.create_sale(
        {
            "store_id": store_a1.id,
            "discount": 2,
            "tax": 1,
            "items": [{"product_id": product_x.id, "quantity": 4, "unit_price": 8}],
        },
        owner_a,
    )


@pytest.fixture
def purchase_of_ten(db_session, owner_a, store_a1, vendor_a, product_x):
    return purchase_service.create_purchase(
        {
            "store_id": store_a1.id,
            "vendor_id": vendor_a.id,
            "items": [{"product_id": product_x.id, "quantity": 10, "unit_price": 5}],
        },
        owner_a,
    )


def sale_return_payload(sale, *lines, reason="Customer changed mind"):
    return {
        "sale_id": sale.id,
        "reason": reason,
        "items": [{"product_id": product.id, "quantity": qty} for product, qty in lines],
    }


def purchase_return_payload(purchase, *lines, reason="Damaged in transit"):
    return {
        "purchase_id": purchase.id,
        "reason": reason,
        "items": [{"product_id": product.id, "quantity": qty} for product, qty in lines],
    }


class TestSaleReturns:

    def test_restocks_and_refunds(self, db_session, owner_a, store_a1, product_x, stocked_sale):
        """Return 2 of the 4 sold -> on hand 6 -> 8, refund 16."""
        assert on_hand(product_x, store_a1) == 6

        ret = return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 2)), owner_a)

        assert ret.refund_amount == Decimal("16.00")
        assert ret.items[0].unit_price == Decimal("8.00")
        assert ret.status == "PENDING"
        assert ret.store_id == store_a1.id
        assert ret.document_number.startswith("RET-")
        assert on_hand(product_x, store_a1) == 8

    def test_explicit_unit_price_overrides_original(self, db_session, owner_a, product_x, stocked_sale):
        payload = sale_return_payload(stocked_sale, (product_x, 1))
        payload["items"][0]["unit_price"] = Decimal("7.50")

        ret = return_service.create_sale_return(payload, owner_a)
        assert ret.refund_amount == Decimal("7.50")

    def test_exceeding_original_quantity_rejected(self, db_session, owner_a, store_a1, product_x, stocked_sale):
        with pytest.raises(InvalidInputError, match="exceeds"):
            return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 5)), owner_a)

        assert db_session.query(SaleReturn).count() == 0
        assert on_hand(product_x, store_a1) == 6

    def test_returned_quantity_is_cumulative(self, db_session, owner_a, store_a1, product_x, stocked_sale):
        return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 3)), owner_a)

        with pytest.raises(InvalidInputError) as exc:
            return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 2)), owner_a)

        assert exc.value.details["already_returned"] == 3
        assert on_hand(product_x, store_a1) == 9

    def test_rejected_returns_still_count(self, db_session, owner_a, store_a1, product_x, stocked_sale):
        """Rejecting a return does not free its quantity; stock never exceeds 6 on hand + 4 sold."""
        first = return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 4)), owner_a)
        return_service.update_sale_return(first.id, owner_a, {"status": "REJECTED"})

        for _ in range(3):
            with pytest.raises(InvalidInputError) as exc:
                return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 4)), owner_a)
            assert exc.value.details["already_returned"] == 4

        assert on_hand(product_x, store_a1) == 10

    def test_returns_created_rejected_still_count(self, db_session, owner_a, store_a1, product_x, stocked_sale):
        payload = sale_return_payload(stocked_sale, (product_x, 4))
        payload["status"] = "REJECTED"
        return_service.create_sale_return(payload, owner_a)

        with pytest.raises(InvalidInputError):
            return_service.create_sale_return(payload, owner_a)
        assert on_hand(product_x, store_a1) <= 10

    def test_sale_items_cannot_drop_below_returned(self, db_session, owner_a, product_x, stocked_sale):
        return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 3)), owner_a)

        with pytest.raises(InvalidInputError, match="below the quantity already returned") as exc:
            sale_service.update_sale(
                stocked_sale.id, owner_a, {"items": [{"product_id": product_x.id, "quantity": 1, "unit_price": 8}]}
            )
        assert exc.value.details["already_returned"] == 3
        assert sale_service.get_sale(stocked_sale.id, owner_a).items[0].quantity == 4

        updated = sale_service.update_sale(
            stocked_sale.id, owner_a, {"items": [{"product_id": product_x.id, "quantity": 3, "unit_price": 8}]}
        )
        assert updated.subtotal == Decimal("24.00")

    def test_product_not_on_original_rejected(self, db_session, owner_a, product_y, stocked_sale):
        with pytest.raises(InvalidInputError, match="not part of the original"):
            return_service.create_sale_return(sale_return_payload(stocked_sale, (product_y, 1)), owner_a)

    def test_reason_required(self, db_session, owner_a, product_x, stocked_sale):
        with pytest.raises(InvalidInputError, match="Reason is required"):
            return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 1), reason=" "), owner_a)

    def test_foreign_sale_not_found(self, db_session, owner_b, product_x, stocked_sale):
        with pytest.raises(NotFoundError, match="Sale not found"):
            return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 1)), owner_b)

    def test_update_rechecks_quantities_excluding_itself(self, db_session, owner_a, product_x, stocked_sale):
        ret = return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 3)), owner_a)

        updated = return_service.update_sale_return(
            ret.id, owner_a, {"items": [{"product_id": product_x.id, "quantity": 4}]}
        )
        assert updated.refund_amount == Decimal("32.00")

        with pytest.raises(InvalidInputError):
            return_service.update_sale_return(ret.id, owner_a, {"items": [{"product_id": product_x.id, "quantity": 5}]})

    def test_original_cannot_be_changed(self, db_session, owner_a, store_a1, product_x, stocked_sale):
        ret = return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 1)), owner_a)
        with pytest.raises(InvalidInputError):
            return_service.update_sale_return(ret.id, owner_a, {"sale_id": stocked_sale.id + 1})

    def test_completed_return_is_terminal(self, db_session, owner_a, product_x, stocked_sale):
        ret = return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 1)), owner_a)
        return_service.update_sale_return(ret.id, owner_a, {"status": "APPROVED"})
        return_service.update_sale_return(ret.id, owner_a, {"status": "COMPLETED"})

        with pytest.raises(InvalidInputError):
            return_service.update_sale_return(ret.id, owner_a, {"status": "PENDING"})

    def test_sale_with_returns_cannot_be_deleted(self, db_session, owner_a, product_x, stocked_sale):
        ret = return_service.create_sale_return(sale_return_payload(stocked_sale, (product_x, 1)), owner_a)

        with pytest.raises(InvalidInputError):
            sale_service.delete_sale(stocked_sale.id, owner_a)

        return_service.delete_sale_return(ret.id, owner_a)
        sale_service.delete_sale(stocked_sale.id, owner_a)


class TestPurchaseReturns:

    def test_purchase_return_ships_stock_out(self, db_session, owner_a, store_a1, product_x, purchase_of_ten):
        ret = return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 4)), owner_a)

        assert ret.document_number.startswith("PRET-")
        assert ret.refund_amount == Decimal("20.00")
        assert ret.purchase_id == purchase_of_ten.id
        assert on_hand(product_x, store_a1) == 6

    def test_needs_current_stock(self, db_session, owner_a, store_a1, product_x, purchase_of_ten):
        set_stock(product_x, store_a1, 1)

        with pytest.raises(InsufficientStockError):
            return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 2)), owner_a)

        assert db_session.query(PurchaseReturn).count() == 0
        assert on_hand(product_x, store_a1) == 1

    def test_exceeding_purchased_quantity_rejected(self, db_session, owner_a, store_a1, product_x, purchase_of_ten):
        set_stock(product_x, store_a1, 50)

        with pytest.raises(InvalidInputError, match="exceeds"):
            return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 11)), owner_a)
        assert on_hand(product_x, store_a1) == 50

    def test_salesman_cannot_create(self, db_session, salesman_a, product_x, purchase_of_ten):
        with pytest.raises(ForbiddenError):
            return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 1)), salesman_a)

    def test_listing_filters_by_original(self, db_session, owner_a, product_x, purchase_of_ten):
        return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 1)), owner_a)
        return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 1)), owner_a)

        rows, meta = return_service.list_purchase_returns(owner_a, DocumentFilter(counterparty_id=purchase_of_ten.id))
        assert meta["total"] == 2
        rows, meta = return_service.list_purchase_returns(owner_a, DocumentFilter(counterparty_id=purchase_of_ten.id + 1))
        assert meta["total"] == 0

    def test_rejected_purchase_return_still_counts(self, db_session, owner_a, store_a1, product_x, purchase_of_ten):
        first = return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 10)), owner_a)
        return_service.update_purchase_return(first.id, owner_a, {"status": "REJECTED"})
        set_stock(product_x, store_a1, 30)

        with pytest.raises(InvalidInputError, match="exceeds"):
            return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 10)), owner_a)
        assert on_hand(product_x, store_a1) == 30

    def test_purchase_items_cannot_drop_below_returned(self, db_session, owner_a, product_x, purchase_of_ten):
        return_service.create_purchase_return(purchase_return_payload(purchase_of_ten, (product_x, 3)), owner_a)

        with pytest.raises(InvalidInputError, match="below the quantity already returned"):
            purchase_service.update_purchase(
                purchase_of_ten.id, owner_a, {"items": [{"product_id": product_x.id, "quantity": 2, "unit_price": 5}]}
            )

        updated = purchase_service.update_purchase(
            purchase_of_ten.id, owner_a, {"items": [{"product_id": product_x.id, "quantity": 3, "unit_price": 5}]}
        )
        assert updated.total_amount == Decimal("15.00")
