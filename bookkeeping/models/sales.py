from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String

from bookkeeping.database.base import Base


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    sale_date = Column(Date, nullable=False)
    quantity = Column(Float, nullable=False)

    # cost_per_unit is copied from the product when the sale is recorded.
    price_per_unit = Column(Float, nullable=False)
    cost_per_unit = Column(Float, nullable=False)

    total_revenue = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False)
    profit = Column(Float, nullable=False)

    customer_name = Column(String)
    notes = Column(String)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        Index("idx_sales_product_date", "product_id", "sale_date"),
        Index("idx_sales_date", "sale_date"),
    )


__all__ = ["Sale"]
