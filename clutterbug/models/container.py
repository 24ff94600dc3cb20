"""
Database model for Container
"""
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from clutterbug.core.database import Base


class Container(Base):
    """Container model - one node of the storage tree (building, room, shelf, bin, ...)"""
    __tablename__ = "container"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    level = Column(Integer, nullable=False, index=True)  # 1 = root level of the active configuration
    purpose = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Physical dimensions, feet for large-scale levels, inches otherwise
    width = Column(Float, nullable=False, default=0.0)
    length = Column(Float, nullable=False, default=0.0)
    height = Column(Float, nullable=False, default=0.0)
    side3 = Column(Float, nullable=True)  # triangles, quadrilaterals, tee shapes
    side4 = Column(Float, nullable=True)  # quadrilaterals, tee shapes

    # Placement on the parent's map
    shape_type = Column(String(20), nullable=False, default="rectangle")  # rectangle, circle, triangle, quadrilateral, tee
    color_type = Column(String(20), nullable=False, default="blue")
    rotation = Column(Float, nullable=False, default=0.0)  # degrees
    map_x = Column(Float, nullable=True)
    map_y = Column(Float, nullable=True)
    map_width = Column(Float, nullable=True)
    map_height = Column(Float, nullable=True)
    map_label = Column(String(200), nullable=True)

    photo_identifier = Column(String(64), nullable=True, index=True)
    show_photo_on_map = Column(Boolean, nullable=False, default=False)
    photo_map_position = Column(String(20), nullable=False, default="corner")
    photo_icon_size = Column(String(20), nullable=False, default="small")

    parent_id = Column(Integer, ForeignKey("container.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    parent = relationship("Container", remote_side=[id], back_populates="children")
    children = relationship(
        "Container",
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="Container.id",
    )
    items = relationship(
        "Item",
        back_populates="container",
        cascade="all, delete-orphan",
        order_by="Item.id",
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None and self.parent is None

    def __repr__(self):
        return f"<Container(id={self.id}, name='{self.name}', level={self.level}, parent_id={self.parent_id})>"
