# Overview: Pytest coverage for the inventory store, journal and manual adjustments.

import pytest

from backoffice.errors import ForbiddenError, InsufficientStockError, InvalidInputError, NotFoundError
from backoffice.extensions import db
from backoffice.models import Inventory, StockMovement
from backoffice.services import inventory_service
from backoffice.services.inventory_service import MovementSource
from conftest import on_hand, set_stock


SOURCE = MovementSource(document_type="TEST", document_id=1, document_number="TEST-1", actor_user_id=7)


class TestIncreaseDecrease:

    def test_get_quantity_absent_row_is_zero(self, db_session, product_x, store_a1):
        assert inventory_service.get_quantity(product_x.id, store_a1.id) == 0

    def test_increase_creates_row_lazily(self, db_session, product_x, store_a1):
        after = inventory_service.increase(product_x.id, store_a1.id, 10, SOURCE)
        db_session.commit()

        assert after == 10
        assert db_session.get(Inventory, (product_x.id, store_a1.id)).quantity == 10

    def test_increase_adds_to_existing_row(self, db_session, product_x, store_a1):
        set_stock(product_x, store_a1, 4)
        after = inventory_service.increase(product_x.id, store_a1.id, 6, SOURCE)
        db_session.commit()

        assert after == 10
        assert on_hand(product_x, store_a1) == 10

    def test_decrease_within_stock(self, db_session, product_x, store_a1):
        set_stock(product_x, store_a1, 10)
        after = inventory_service.decrease(product_x.id, store_a1.id, 4, SOURCE)
        db_session.commit()

        assert after == 6
        assert on_hand(product_x, store_a1) == 6

    def test_decrease_to_exactly_zero(self, db_session, product_x, store_a1):
        set_stock(product_x, store_a1, 3)
        assert inventory_service.decrease(product_x.id, store_a1.id, 3, SOURCE) == 0

    def test_decrease_below_zero_is_refused(self, db_session, product_x, store_a1):
        set_stock(product_x, store_a1, 2)

        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.decrease(product_x.id, store_a1.id, 5, SOURCE, label="Product X")
        db_session.rollback()

        assert exc.value.available == 2
        assert exc.value.requested == 5
        assert "Product X" in exc.value.message
        assert on_hand(product_x, store_a1) == 2

    def test_decrease_without_row_is_refused(self, db_session, product_x, store_a1):
        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.decrease(product_x.id, store_a1.id, 1, SOURCE)
        assert exc.value.available == 0

    @pytest.mark.parametrize("delta", [0, -3, True])
    def test_delta_must_be_positive_integer(self, db_session, product_x, store_a1, delta):
        with pytest.raises(InvalidInputError):
            inventory_service.increase(product_x.id, store_a1.id, delta, SOURCE)

    def test_every_change_is_journaled(self, db_session, product_x, store_a1):
        inventory_service.increase(product_x.id, store_a1.id, 10, SOURCE)
        inventory_service.decrease(product_x.id, store_a1.id, 3, SOURCE)
        db_session.commit()

        moves = db_session.query(StockMovement).order_by(StockMovement.id).all()
        assert [(m.quantity_delta, m.quantity_after) for m in moves] == [(10, 10), (-3, 7)]
        assert all(m.document_number == "TEST-1" and m.actor_user_id == 7 for m in moves)


class TestAdjustInventory:

    def test_positive_adjustment_creates_row(self, db_session, owner_a, store_a1, product_x):
        row = inventory_service.adjust_inventory(owner_a, store_a1.id, product_x.id, 12, "Opening balance")

        assert row.quantity == 12
        move = db_session.query(StockMovement).one()
        assert move.document_type == "ADJUSTMENT"
        assert move.document_id is None
        assert move.note == "Opening balance"

    def test_negative_adjustment(self, db_session, manager_a, store_a1, product_x):
        set_stock(product_x, store_a1, 10)
        row = inventory_service.adjust_inventory(manager_a, store_a1.id, product_x.id, -4, "Damaged")
        assert row.quantity == 6

    def test_negative_result_is_refused(self, db_session, owner_a, store_a1, product_x):
        set_stock(product_x, store_a1, 3)

        with pytest.raises(InsufficientStockError):
            inventory_service.adjust_inventory(owner_a, store_a1.id, product_x.id, -4, "Count")

        assert on_hand(product_x, store_a1) == 3
        assert db_session.query(StockMovement).count() == 0

    def test_zero_change_is_refused(self, db_session, owner_a, store_a1, product_x):
        with pytest.raises(InvalidInputError):
            inventory_service.adjust_inventory(owner_a, store_a1.id, product_x.id, 0, "Nothing")

    def test_reason_required(self, db_session, owner_a, store_a1, product_x):
        with pytest.raises(InvalidInputError):
            inventory_service.adjust_inventory(owner_a, store_a1.id, product_x.id, 1, "  ")

    def test_salesman_cannot_adjust(self, db_session, salesman_a, store_a1, product_x):
        with pytest.raises(ForbiddenError):
            inventory_service.adjust_inventory(salesman_a, store_a1.id, product_x.id, 1, "Found one")

    def test_foreign_store_is_not_found(self, db_session, owner_a, store_b1, product_x):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_inventory(owner_a, store_b1.id, product_x.id, 1, "Count")


class TestInventoryReads:

    def test_list_inventory_scoped_to_company(
        self, db_session, owner_a, store_a1, store_b1, product_x, product_b
    ):
        set_stock(product_x, store_a1, 7)
        set_stock(product_b, store_b1, 9)

        rows, meta = inventory_service.list_inventory(owner_a)

        assert [(r.product_id, r.store_id) for r in rows] == [(product_x.id, store_a1.id)]
        assert meta == {"page": 1, "limit": 10, "total": 1}

    def test_list_inventory_search_by_name(self, db_session, owner_a, store_a1, product_x, product_y):
        set_stock(product_x, store_a1, 1)
        set_stock(product_y, store_a1, 1)

        rows, _ = inventory_service.list_inventory(owner_a, inventory_service.InventoryFilter(search_term="uct y"))
        assert [r.product_id for r in rows] == [product_y.id]

    def test_list_inventory_pagination(self, db_session, owner_a, store_a1, store_a2, product_x, product_y):
        for store in (store_a1, store_a2):
            set_stock(product_x, store, 1)
            set_stock(product_y, store, 1)

        rows, meta = inventory_service.list_inventory(owner_a, inventory_service.InventoryFilter(page=2, limit=3))
        assert len(rows) == 1
        assert meta == {"page": 2, "limit": 3, "total": 4}

    def test_low_stock_uses_reorder_level(self, db_session, salesman_a, store_a1, product_x, product_y):
        set_stock(product_x, store_a1, 5)   # reorder_level 5 -> low
        set_stock(product_y, store_a1, 1)   # reorder_level 0 -> fine

        rows, _ = inventory_service.list_low_stock(salesman_a)

        assert [r.product_id for r in rows] == [product_x.id]
        assert rows[0].to_dict()["is_low_stock"] is True

    def test_store_inventory_rejects_foreign_store(self, db_session, owner_a, store_b1):
        with pytest.raises(NotFoundError):
            inventory_service.get_store_inventory(owner_a, store_b1.id)

    def test_product_inventory_totals_across_stores(self, db_session, owner_a, store_a1, store_a2, product_x):
        set_stock(product_x, store_a1, 4)
        set_stock(product_x, store_a2, 6)

        result = inventory_service.get_product_inventory(owner_a, product_x.id)

        assert result["total_quantity"] == 10
        assert [s["store_id"] for s in result["stores"]] == sorted([store_a1.id, store_a2.id])

    def test_movements_listing_filters(self, db_session, owner_a, store_a1, store_a2, product_x):
        inventory_service.adjust_inventory(owner_a, store_a1.id, product_x.id, 5, "Count")
        inventory_service.adjust_inventory(owner_a, store_a2.id, product_x.id, 2, "Count")

        rows, meta = inventory_service.list_movements(
            owner_a, inventory_service.MovementFilter(store_id=store_a2.id)
        )
        assert meta["total"] == 1
        assert rows[0].quantity_delta == 2
