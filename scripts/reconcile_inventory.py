import argparse
import logging
import sys

from bookkeeping.core.logging import setup_logging
from bookkeeping.core.security import SessionContext
from bookkeeping.database import SessionLocal
from bookkeeping.services.ledger_service import reconcile_inventory

logger = logging.getLogger(__name__)

RECONCILE_CONTEXT = SessionContext(user_id="reconcile-script", auth_type="cli")


def parse_args():
    parser = argparse.ArgumentParser(
        description="Check that stock equals restocks minus recorded sales."
    )
    parser.add_argument(
        "--product-id",
        type=int,
        default=None,
        help="Only check this product.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()

    db = SessionLocal()
    try:
        discrepancies = reconcile_inventory(db, RECONCILE_CONTEXT, product_id=args.product_id)
    finally:
        db.close()

    if not discrepancies:
        logger.info("Inventory is balanced.")
        return 0

    for entry in discrepancies:
        logger.warning(
            "Inventory %s (product %s): recorded %s, expected %s (difference %+g).",
            entry.inventory_id,
            entry.product_id,
            entry.recorded_quantity,
            entry.expected_quantity,
            entry.difference,
        )
    return 1


if __name__ == "__main__":
    sys.exit(main())
