from bookkeeping.services.ledger_service import delete_sale, reconcile_inventory, record_sale, restock
from bookkeeping.services.summary_service import dashboard_summary

__all__ = [
    "dashboard_summary",
    "delete_sale",
    "reconcile_inventory",
    "record_sale",
    "restock",
]
