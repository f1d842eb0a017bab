import argparse
from datetime import date, timedelta

from sqlalchemy import delete, select

from bookkeeping.core.logging import setup_logging
from bookkeeping.core.security import SessionContext
from bookkeeping.database import Base, SessionLocal, engine
from bookkeeping.models import Expense, Inventory, PriceHistory, Product, RestockEntry, Sale, import_all_models
from bookkeeping.services.expense_service import record_expense
from bookkeeping.services.ledger_service import record_sale, restock
from bookkeeping.services.product_service import create_product, get_inventory_for_product

SEED_CONTEXT = SessionContext(user_id="seed-script", auth_type="cli")


def parse_args():
    parser = argparse.ArgumentParser(description="Seed sample bookkeeping data.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()

    import_all_models()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.reset:
            for model in (Sale, RestockEntry, PriceHistory, Inventory, Expense, Product):
                db.execute(delete(model))
            db.commit()

        has_product = db.execute(select(Product.id).limit(1)).first()
        if has_product:
            print("Seed skipped: products already exist.")
            return

        today = date.today()
        catalog = [
            ("Empanada", "pastry", 20.0, 10.0, 50),
            ("Chicken Adobo Rice Bowl", "meal", 85.0, 48.0, 20),
            ("Calamansi Juice", "drinks", 25.0, 9.5, 8),
        ]
        for name, category, price, cost, stock in catalog:
            product = create_product(db, SEED_CONTEXT, name, price, cost, category=category)
            inventory = get_inventory_for_product(db, product.id)
            restock(db, SEED_CONTEXT, inventory.id, stock, today - timedelta(days=7))

        products = db.execute(select(Product).order_by(Product.id)).scalars().all()
        record_sale(
            db, SEED_CONTEXT, products[0].id, 5, 20.0, today - timedelta(days=2), customer_name="Walk-in"
        )
        record_sale(db, SEED_CONTEXT, products[1].id, 3, 85.0, today - timedelta(days=1))

        record_expense(
            db, SEED_CONTEXT, today - timedelta(days=6), "materials", 450.0, "Flour and ground pork"
        )
        record_expense(db, SEED_CONTEXT, today - timedelta(days=3), "utilities", 300.0, "Electricity")
        print("Seed data created.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
