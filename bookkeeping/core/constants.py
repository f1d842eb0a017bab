EXPENSE_CATEGORIES = ("materials", "operational", "utilities", "rent", "other")
MATERIALS_CATEGORY = "materials"

RECENT_SALES_LIMIT = 5
LOW_STOCK_LIMIT = 10

# Quantities are stored as floats: inputs are rounded to QUANTITY_DECIMALS
# places and anything closer than QUANTITY_TOLERANCE counts as equal.
QUANTITY_DECIMALS = 4
QUANTITY_TOLERANCE = 1e-6

DEFAULT_DASHBOARD_PATH = "/dashboard"
LOGIN_PATH = "/login"
