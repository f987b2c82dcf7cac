from __future__ import annotations

import uuid
from decimal import Decimal

from ..extensions import db
from shelfkeep.time_utils import utcnow, to_utc_z

UNIT_TYPES = ("pcs", "pack", "box", "kg", "g", "L", "mL", "dozen")


def to_money_str(value) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal("0.01")))


class Category(db.Model):
    """
    Shared category vocabulary.

    Categories are global (not owner-scoped). Names are unique ignoring case:
    the service pre-checks with lower(name) and the functional unique index
    below is the final arbiter under concurrent creates.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )

    # ON DELETE SET NULL is enforced by the store; the ORM does not load products.
    products = db.relationship("Product", back_populates="category", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


db.Index("uq_categories_name_lower", db.func.lower(Category.__table__.c.name), unique=True)


class Product(db.Model):
    """
    Product master data, owned by one user.

    BARCODE: globally unique (not per owner). Inserts and updates go through a
    single INSERT ... ON CONFLICT (barcode) statement in products_service so two
    concurrent submissions of one barcode can never produce two rows.

    STOCK: current_stock is the maintained running total of the stock ledger
    (stock_movements) minus units sold (sales_items). It is only ever changed
    with a store-side `current_stock + delta` expression under a row lock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint(
            "unit_type IN ('pcs','pack','box','kg','g','L','mL','dozen')",
            name="ck_products_unit_type",
        ),
        db.CheckConstraint("purchase_cost >= 0", name="ck_products_purchase_cost"),
        db.CheckConstraint("selling_price > 0", name="ck_products_selling_price"),
        db.Index("ix_products_owner_active_created", "owner_id", "is_active", "created_at"),
        db.Index("ix_products_owner_category", "owner_id", "category_id"),
    )

    product_id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    barcode = db.Column(db.String(50), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    unit_type = db.Column(db.String(20), nullable=False, default="pcs", server_default="pcs")
    purchase_cost = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"), server_default="0")
    selling_price = db.Column(db.Numeric(10, 2), nullable=False)
    current_stock = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    reorder_level = db.Column(db.Integer, nullable=False, default=10, server_default="10")
    image = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=db.true())

    owner_id = db.Column(db.String(255), nullable=False, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=db.func.now(),
    )

    category = db.relationship("Category", back_populates="products")
    movements = db.relationship(
        "StockMovement",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Product id={self.product_id} barcode={self.barcode!r} owner_id={self.owner_id!r}>"

    @property
    def needs_reorder(self) -> bool:
        return self.current_stock <= self.reorder_level

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "barcode": self.barcode,
            "name": self.name,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category is not None else None,
            "unit_type": self.unit_type,
            "purchase_cost": to_money_str(self.purchase_cost),
            "selling_price": to_money_str(self.selling_price),
            "current_stock": self.current_stock,
            "reorder_level": self.reorder_level,
            "image": self.image,
            "is_active": self.is_active,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
