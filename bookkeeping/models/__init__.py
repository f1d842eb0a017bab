import importlib

from bookkeeping.models.expense import Expense
from bookkeeping.models.inventory import Inventory
from bookkeeping.models.price_history import PriceHistory
from bookkeeping.models.product import Product
from bookkeeping.models.restock import RestockEntry
from bookkeeping.models.sales import Sale


def import_all_models() -> None:
    for module_name in (
        "bookkeeping.models.expense",
        "bookkeeping.models.inventory",
        "bookkeeping.models.price_history",
        "bookkeeping.models.product",
        "bookkeeping.models.restock",
        "bookkeeping.models.sales",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Expense",
    "Inventory",
    "PriceHistory",
    "Product",
    "RestockEntry",
    "Sale",
    "import_all_models",
]
