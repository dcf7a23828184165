# models/launch.py
from sqlalchemy import Column, String, Text, Boolean, DateTime, Float, Integer, Numeric, JSON, ForeignKey, Uuid, CheckConstraint
from uuid import uuid4
from app.db.base_class import Base
from app.models.enums import LaunchPropertyType, LaunchStatus, LaunchCurrency, AreaUnit, check_in


class Launch(Base):
    __tablename__ = "launches"

    launch_id = Column(Uuid, primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    developer = Column(String(200), nullable=False)  # free text, not a foreign key
    description = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    image = Column(String(500), nullable=True)
    images = Column(JSON, nullable=False, default=list)
    location = Column(String(255), nullable=False)
    property_type = Column(String(30), nullable=False)
    status = Column(String(30), nullable=False)
    starting_price = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    launch_date = Column(DateTime, nullable=False)
    completion_date = Column(DateTime, nullable=True)
    area = Column(Float, nullable=False)
    area_unit = Column(String(10), nullable=False, default=AreaUnit.SQM.value)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    amenities = Column(JSON, nullable=False, default=list)
    is_featured = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    contact_info = Column(JSON, nullable=True)
    coordinates = Column(JSON, nullable=True)
    nearby_facilities = Column(JSON, nullable=True)
    payment_plans = Column(JSON, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    updated_by_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        CheckConstraint(check_in("property_type", LaunchPropertyType), name="chk_launch_property_type"),
        CheckConstraint(check_in("status", LaunchStatus), name="chk_launch_status"),
        CheckConstraint(check_in("currency", LaunchCurrency), name="chk_launch_currency"),
    )
