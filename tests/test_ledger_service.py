import tempfile
import threading
import unittest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from bookkeeping.core.errors import (
    InsufficientStock,
    InvalidInput,
    InventoryNotFound,
    ProductNotFound,
    SaleNotFound,
    StorageUnavailable,
    Unauthenticated,
)
from bookkeeping.core.security import SessionContext
from bookkeeping.database.base import Base
from bookkeeping.database.engine import build_engine
from bookkeeping.models import Inventory, RestockEntry, Sale, import_all_models
from bookkeeping.services.ledger_service import (
    delete_sale,
    reconcile_inventory,
    record_sale,
    restock,
)
from bookkeeping.services.product_service import (
    create_product,
    deactivate_product,
    get_inventory_for_product,
    update_product,
)

OWNER = SessionContext(user_id="owner", auth_type="session")


def _quantity(db, product_id):
    return db.execute(
        select(Inventory.quantity).where(Inventory.product_id == product_id)
    ).scalar_one()


def _sale_count(db, product_id):
    return db.execute(
        select(func.count(Sale.id)).where(Sale.product_id == product_id)
    ).scalar_one()


class LedgerServiceTest(unittest.TestCase):
    def setUp(self):
        import_all_models()
        self.engine = build_engine("sqlite:///:memory:", timeout_seconds=5)
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.db = self.Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _stocked_product(self, name="Empanada", price=20, cost=10, stock=50):
        product = create_product(self.db, OWNER, name, price, cost, category="pastry")
        inventory = get_inventory_for_product(self.db, product.id)
        if stock:
            restock(self.db, OWNER, inventory.id, stock)
        return product, inventory

    def test_empanada_scenario(self):
        product = create_product(self.db, OWNER, "Empanada", 20, 10)
        inventory = get_inventory_for_product(self.db, product.id)
        self.assertEqual(inventory.quantity, 0)

        restocked = restock(self.db, OWNER, inventory.id, 50)
        self.assertEqual(restocked.quantity, 50)

        sale = record_sale(self.db, OWNER, product.id, 5, 20, date(2026, 3, 1))
        self.assertEqual(sale.total_revenue, 100)
        self.assertEqual(sale.total_cost, 50)
        self.assertEqual(sale.profit, 50)
        self.assertEqual(sale.cost_per_unit, 10)
        self.assertEqual(_quantity(self.db, product.id), 45)

        delete_sale(self.db, OWNER, sale.id)
        self.assertEqual(_quantity(self.db, product.id), 50)
        self.assertEqual(_sale_count(self.db, product.id), 0)

    def test_sale_beyond_stock_is_rejected_without_mutation(self):
        product, _ = self._stocked_product(stock=4)

        with self.assertRaises(InsufficientStock) as ctx:
            record_sale(self.db, OWNER, product.id, 5, 20)

        self.assertEqual(ctx.exception.available, 4)
        self.assertEqual(ctx.exception.requested, 5)
        self.assertEqual(ctx.exception.to_dict()["error"], "insufficient_stock")
        self.assertEqual(_quantity(self.db, product.id), 4)
        self.assertEqual(_sale_count(self.db, product.id), 0)

    def test_sale_of_exact_stock_empties_inventory(self):
        product, _ = self._stocked_product(stock=2.5)

        record_sale(self.db, OWNER, product.id, 2.5, 20)

        self.assertEqual(_quantity(self.db, product.id), 0)
        with self.assertRaises(InsufficientStock) as ctx:
            record_sale(self.db, OWNER, product.id, 1, 20)
        self.assertEqual(ctx.exception.available, 0)

    def test_fractional_stock_can_be_sold_out(self):
        product, _ = self._stocked_product(stock=0.3)

        record_sale(self.db, OWNER, product.id, 0.1, 20)
        record_sale(self.db, OWNER, product.id, 0.2, 20)

        self.assertEqual(_quantity(self.db, product.id), 0)
        self.assertEqual(_sale_count(self.db, product.id), 2)
        self.assertEqual(reconcile_inventory(self.db, OWNER), [])
        with self.assertRaises(InsufficientStock):
            record_sale(self.db, OWNER, product.id, 0.0001, 20)

    def test_fractional_sale_cannot_exceed_stock(self):
        product, _ = self._stocked_product(stock=1.5)

        with self.assertRaises(InsufficientStock):
            record_sale(self.db, OWNER, product.id, 1.5001, 20)
        with self.assertRaises(InvalidInput):
            record_sale(self.db, OWNER, product.id, 0.00001, 20)

        sale = record_sale(self.db, OWNER, product.id, 0.12345678, 20)
        self.assertEqual(sale.quantity, 0.1235)
        self.assertAlmostEqual(_quantity(self.db, product.id), 1.3765, places=9)

    def test_sale_requires_active_product(self):
        product, _ = self._stocked_product()
        deactivate_product(self.db, OWNER, product.id)

        with self.assertRaises(ProductNotFound):
            record_sale(self.db, OWNER, product.id, 1, 20)
        with self.assertRaises(ProductNotFound):
            record_sale(self.db, OWNER, 9999, 1, 20)
        self.assertEqual(_quantity(self.db, product.id), 50)

    def test_sale_rejects_non_positive_values(self):
        product, _ = self._stocked_product()

        for quantity, price in ((0, 20), (-1, 20), (1, 0), (1, -5), (float("nan"), 20), ("abc", 20)):
            with self.assertRaises(InvalidInput):
                record_sale(self.db, OWNER, product.id, quantity, price)
        self.assertEqual(_quantity(self.db, product.id), 50)

    def test_sale_keeps_cost_snapshot_after_product_edit(self):
        product, _ = self._stocked_product()
        sale = record_sale(self.db, OWNER, product.id, 2, 20)

        update_product(self.db, OWNER, product.id, cost_per_unit=15, selling_price=30)

        stored = self.db.execute(select(Sale).where(Sale.id == sale.id)).scalar_one()
        self.assertEqual(stored.cost_per_unit, 10)
        self.assertEqual(stored.price_per_unit, 20)
        self.assertEqual(stored.profit, 20)

    def test_sale_strips_optional_text(self):
        product, _ = self._stocked_product()

        sale = record_sale(
            self.db, OWNER, product.id, 1, 20, "2026-02-14", customer_name="  Ana ", notes="   "
        )

        self.assertEqual(sale.sale_date, date(2026, 2, 14))
        self.assertEqual(sale.customer_name, "Ana")
        self.assertIsNone(sale.notes)

    def test_delete_unknown_sale(self):
        with self.assertRaises(SaleNotFound):
            delete_sale(self.db, OWNER, 12345)

    def test_delete_sale_without_inventory_keeps_sale(self):
        product, inventory = self._stocked_product()
        sale = record_sale(self.db, OWNER, product.id, 5, 20)
        self.db.execute(delete(RestockEntry).where(RestockEntry.inventory_id == inventory.id))
        self.db.execute(delete(Inventory).where(Inventory.id == inventory.id))
        self.db.commit()

        with self.assertRaises(InventoryNotFound):
            delete_sale(self.db, OWNER, sale.id)

        self.assertEqual(_sale_count(self.db, product.id), 1)

    def test_restock_validation(self):
        product, inventory = self._stocked_product(stock=0)

        with self.assertRaises(InvalidInput):
            restock(self.db, OWNER, inventory.id, 0)
        with self.assertRaises(InventoryNotFound):
            restock(self.db, OWNER, 9999, 5)

        record = restock(self.db, OWNER, inventory.id, 12, date(2026, 1, 5))
        self.assertEqual(record.quantity, 12)
        self.assertEqual(record.last_restocked_date, date(2026, 1, 5))

    def test_operations_require_session(self):
        product, inventory = self._stocked_product()
        expired = SessionContext(
            user_id="owner",
            auth_type="jwt",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )

        for ctx in (None, expired):
            with self.assertRaises(Unauthenticated):
                record_sale(self.db, ctx, product.id, 1, 20)
            with self.assertRaises(Unauthenticated):
                restock(self.db, ctx, inventory.id, 1)
            with self.assertRaises(Unauthenticated):
                delete_sale(self.db, ctx, 1)
        self.assertEqual(_quantity(self.db, product.id), 50)

    def test_deactivation_keeps_stock_and_sales(self):
        product, _ = self._stocked_product()
        sale = record_sale(self.db, OWNER, product.id, 5, 20, date(2026, 3, 1))

        deactivate_product(self.db, OWNER, product.id)

        self.assertEqual(_quantity(self.db, product.id), 45)
        self.assertEqual(_sale_count(self.db, product.id), 1)
        stored = self.db.execute(
            select(
                Sale.sale_date,
                Sale.quantity,
                Sale.price_per_unit,
                Sale.cost_per_unit,
                Sale.total_revenue,
                Sale.total_cost,
                Sale.profit,
            ).where(Sale.id == sale.id)
        ).one()
        self.assertEqual(tuple(stored), (date(2026, 3, 1), 5, 20, 10, 100, 50, 50))

    def test_stock_reconciles_with_restocks_and_sales(self):
        product, inventory = self._stocked_product(stock=10)
        first = record_sale(self.db, OWNER, product.id, 3, 20)
        record_sale(self.db, OWNER, product.id, 4.5, 20)
        restock(self.db, OWNER, inventory.id, 2)
        delete_sale(self.db, OWNER, first.id)

        self.assertEqual(_quantity(self.db, product.id), 10 + 2 - 4.5)
        self.assertEqual(reconcile_inventory(self.db, OWNER), [])

        self.db.execute(
            update(Inventory).where(Inventory.id == inventory.id).values(quantity=1)
        )
        self.db.commit()

        discrepancies = reconcile_inventory(self.db, OWNER, product_id=product.id)
        self.assertEqual(len(discrepancies), 1)
        self.assertEqual(discrepancies[0].expected_quantity, 7.5)
        self.assertEqual(discrepancies[0].difference, -6.5)

    def test_storage_failure_is_reported(self):
        product, _ = self._stocked_product()
        failure = OperationalError("UPDATE inventory", {}, Exception("database is locked"))

        with patch.object(self.db, "execute", side_effect=failure):
            with self.assertRaises(StorageUnavailable):
                record_sale(self.db, OWNER, product.id, 1, 20)

        self.assertEqual(_quantity(self.db, product.id), 50)


class ConcurrentSalesTest(unittest.TestCase):
    def setUp(self):
        import_all_models()
        self._tmp = tempfile.TemporaryDirectory()
        db_path = Path(self._tmp.name) / "ledger.db"
        self.engine = build_engine("sqlite:///{}".format(db_path), timeout_seconds=10)
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def tearDown(self):
        self.engine.dispose()
        self._tmp.cleanup()

    def test_only_one_oversubscribed_sale_succeeds(self):
        with self.Session() as db:
            product = create_product(db, OWNER, "Empanada", 20, 10)
            inventory = get_inventory_for_product(db, product.id)
            restock(db, OWNER, inventory.id, 50)

        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def sell():
            with self.Session() as db:
                barrier.wait()
                try:
                    sale = record_sale(db, OWNER, product.id, 30, 20)
                    result = ("sold", sale.id)
                except InsufficientStock as exc:
                    result = ("rejected", exc.available)
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=sell) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        kinds = sorted(kind for kind, _ in outcomes)
        self.assertEqual(kinds, ["rejected", "sold"])
        rejected = [value for kind, value in outcomes if kind == "rejected"]
        self.assertEqual(rejected, [20])

        with self.Session() as db:
            self.assertEqual(_quantity(db, product.id), 20)
            self.assertEqual(_sale_count(db, product.id), 1)
            self.assertEqual(reconcile_inventory(db, OWNER), [])


if __name__ == "__main__":
    unittest.main()
