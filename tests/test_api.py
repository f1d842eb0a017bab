import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from bookkeeping.config import Settings
from bookkeeping.core.security import SessionContext
from bookkeeping.database.base import Base
from bookkeeping.database.engine import build_engine
from bookkeeping.dependencies import get_db, require_auth
from bookkeeping.main import app
from bookkeeping.models import Inventory, import_all_models

OWNER = SessionContext(user_id="owner", auth_type="session")


class LedgerApiTest(unittest.TestCase):
    def setUp(self):
        import_all_models()
        self.engine = build_engine("sqlite:///:memory:", timeout_seconds=5)
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[require_auth] = lambda: OWNER
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()

    def _quantity(self, product_id):
        with self.Session() as db:
            return db.execute(
                select(Inventory.quantity).where(Inventory.product_id == product_id)
            ).scalar_one()

    def _stocked_product(self, stock=50):
        response = self.client.post(
            "/products",
            json={"name": "Empanada", "selling_price": 20, "cost_per_unit": 10},
        )
        self.assertEqual(response.status_code, 201)
        product = response.json()

        items = self.client.get("/products").json()
        inventory_id = items[0]["inventory_id"]
        response = self.client.post(
            "/inventory/{}/restock".format(inventory_id), json={"added_quantity": stock}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["quantity"], stock)
        return product, inventory_id

    def test_sale_lifecycle(self):
        product, _ = self._stocked_product()

        response = self.client.post(
            "/sales",
            json={"product_id": product["id"], "quantity": 5, "price_per_unit": 20},
        )
        self.assertEqual(response.status_code, 201)
        sale = response.json()
        self.assertEqual(sale["total_revenue"], 100)
        self.assertEqual(sale["profit"], 50)
        self.assertEqual(self._quantity(product["id"]), 45)

        listing = self.client.get("/sales").json()
        self.assertEqual(listing["totals"]["count"], 1)
        self.assertEqual(listing["sales"][0]["product_name"], "Empanada")

        response = self.client.delete("/sales/{}".format(sale["id"]))
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self._quantity(product["id"]), 50)

        response = self.client.delete("/sales/{}".format(sale["id"]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "sale_not_found")

    def test_oversell_returns_conflict(self):
        product, _ = self._stocked_product(stock=3)

        response = self.client.post(
            "/sales",
            json={"product_id": product["id"], "quantity": 4, "price_per_unit": 20},
        )

        self.assertEqual(response.status_code, 409)
        body = response.json()
        self.assertEqual(body["error"], "insufficient_stock")
        self.assertEqual(body["available"], 3)
        self.assertEqual(body["requested"], 4)
        self.assertEqual(self._quantity(product["id"]), 3)

    def test_invalid_quantity_returns_422(self):
        product, _ = self._stocked_product()

        response = self.client.post(
            "/sales",
            json={"product_id": product["id"], "quantity": 0, "price_per_unit": 20},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"], "invalid_input")

    def test_restock_unknown_inventory(self):
        response = self.client.post("/inventory/999/restock", json={"added_quantity": 5})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "inventory_not_found")

    def test_dashboard_and_expenses(self):
        product, _ = self._stocked_product()
        self.client.post(
            "/sales",
            json={"product_id": product["id"], "quantity": 5, "price_per_unit": 20},
        )
        response = self.client.post(
            "/expenses",
            json={"category": "materials", "amount": 30, "description": "Flour"},
        )
        self.assertEqual(response.status_code, 201)

        summary = self.client.get("/dashboard").json()
        self.assertEqual(summary["total_revenue"], 100)
        self.assertEqual(summary["gross_profit"], 50)
        self.assertEqual(summary["net_profit"], 20)
        self.assertEqual(summary["inventory_value"], 450)

        self.assertEqual(self.client.get("/inventory/reconcile").json(), [])

    def test_requests_without_credentials_are_rejected(self):
        del app.dependency_overrides[require_auth]
        settings = Settings(_env_file=None, API_KEYS="alpha")

        with patch("bookkeeping.core.security.get_settings", return_value=settings):
            response = self.client.get("/products")
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["error"], "unauthenticated")
            self.assertEqual(response.headers["www-authenticate"], "Bearer")

            response = self.client.get("/", follow_redirects=False)
            self.assertEqual(response.status_code, 302)
            self.assertEqual(response.headers["location"], "/login")

            response = self.client.get("/products", headers={"X-API-Key": "alpha"})
            self.assertEqual(response.status_code, 200)

            response = self.client.get(
                "/", headers={"X-API-Key": "alpha"}, follow_redirects=False
            )
            self.assertEqual(response.headers["location"], "/dashboard")

    def test_health(self):
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(response.json()["database"], "ok")

    def test_health_reports_unreachable_database(self):
        broken = MagicMock()
        broken.execute.side_effect = OperationalError(
            "SELECT 1", {}, Exception("unable to open database file")
        )
        app.dependency_overrides[get_db] = lambda: broken

        response = self.client.get("/health")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"], "storage_unavailable")


if __name__ == "__main__":
    unittest.main()
