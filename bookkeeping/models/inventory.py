from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Integer, String

from bookkeeping.database.base import Base


class Inventory(Base):
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, unique=True)

    quantity = Column(Float, nullable=False, default=0)
    unit = Column(String, nullable=False, default="pcs")
    reorder_level = Column(Float, nullable=False, default=10)

    last_restocked_date = Column(Date)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint("reorder_level >= 0", name="ck_inventory_reorder_level_non_negative"),
    )


__all__ = ["Inventory"]
