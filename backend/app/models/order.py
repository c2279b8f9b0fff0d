"""
Order tables - committed orders and their priced lines
"""
from sqlalchemy import Column, Integer, String, DateTime, DECIMAL, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Order(Base):
    """
    Committed orders. Pricing breakdown is embedded in the row; rows are
    never updated after insert.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("final_price >= 0", name="ck_orders_final_price_non_negative"),
        CheckConstraint("final_price <= base_price", name="ck_orders_final_not_above_base"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True, nullable=False)

    # Pricing breakdown
    base_price = Column(DECIMAL(12, 2), nullable=False)
    location_tariff_rate = Column(DECIMAL(8, 4), nullable=False)
    discount_type = Column(String(50))
    discount_rate = Column(DECIMAL(8, 4))
    discount_amount = Column(DECIMAL(12, 2), nullable=False, default=0)
    final_price = Column(DECIMAL(12, 2), nullable=False)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan",
                         order_by="OrderItem.line_number")


class OrderItem(Base):
    """
    Priced lines of each order, kept in request order
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        CheckConstraint("unit_final_price <= unit_base_price", name="ck_order_items_final_not_above_base"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    line_number = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_base_price = Column(DECIMAL(12, 2), nullable=False)
    unit_final_price = Column(DECIMAL(12, 2), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")
