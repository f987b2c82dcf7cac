from __future__ import annotations

from ..extensions import db
from shelfkeep.time_utils import utcnow, to_utc_z

MOVEMENT_TYPES = ("add_stock", "return", "adjustment", "wastage")


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    quantity is signed: positive adds stock, negative removes it. Rows are
    never updated or deleted on their own; they go away only when the product
    itself is deleted (ON DELETE CASCADE).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint(
            "type IN ('add_stock','return','adjustment','wastage')",
            name="ck_stock_movements_type",
        ),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Uuid,
        db.ForeignKey("products.product_id", ondelete="CASCADE"),
        nullable=False,
    )
    type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    actor_id = db.Column(db.String(255), nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )

    product = db.relationship("Product", back_populates="movements")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": str(self.product_id),
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "actor_id": self.actor_id,
            "created_at": to_utc_z(self.created_at),
        }
