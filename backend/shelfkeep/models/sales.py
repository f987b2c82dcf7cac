from __future__ import annotations

from ..extensions import db
from shelfkeep.time_utils import utcnow, to_utc_z
from .catalog import to_money_str


class SalesOrder(db.Model):
    """
    Sale header. total_amount is the sum of its items' line totals and is
    written in the same transaction as the items and the stock decrements.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.Index("ix_sales_orders_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(255), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(50), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )

    items = db.relationship(
        "SalesItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SalesItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "total_amount": to_money_str(self.total_amount),
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SalesItem(db.Model):
    """Sale line. unit_selling_price is a snapshot taken when the sale is recorded."""
    __tablename__ = "sales_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_items_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("sales_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # RESTRICT: a product with sales history cannot be hard-deleted.
    product_id = db.Column(
        db.Uuid,
        db.ForeignKey("products.product_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity = db.Column(db.Integer, nullable=False)
    unit_selling_price = db.Column(db.Numeric(10, 2), nullable=False)
    line_total = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )

    order = db.relationship("SalesOrder", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": str(self.product_id),
            "quantity": self.quantity,
            "unit_selling_price": to_money_str(self.unit_selling_price),
            "line_total": to_money_str(self.line_total),
            "created_at": to_utc_z(self.created_at),
        }
