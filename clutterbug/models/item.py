"""
Database model for Item
"""
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship

from clutterbug.core.database import Base


class Item(Base):
    """Item model - a leaf inventory record stored in a terminal-level container"""
    __tablename__ = "item"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_item_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    photo_identifier = Column(String(64), nullable=True, index=True)

    # Measurements in inches
    height = Column(Float, nullable=False, default=0.0)
    width = Column(Float, nullable=False, default=0.0)
    length = Column(Float, nullable=False, default=0.0)

    category = Column(String(100), nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=True)
    sku = Column(String(100), nullable=True)
    condition = Column(String(20), nullable=False, default="Good")  # New, Like New, Good, Fair, Poor, For Parts

    show_photo_on_map = Column(Boolean, nullable=False, default=False)
    photo_map_position = Column(String(20), nullable=False, default="floating")
    photo_icon_size = Column(String(20), nullable=False, default="small")

    container_id = Column(Integer, ForeignKey("container.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    container = relationship("Container", back_populates="items")

    def __repr__(self):
        return f"<Item(id={self.id}, name='{self.name}', quantity={self.quantity}, container_id={self.container_id})>"
