# models/property.py
from sqlalchemy import Column, String, Text, Boolean, DateTime, Numeric, JSON, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.db.base_class import Base
from app.models.enums import (
    PropertyType, PropertyStatus, DeveloperStatus, ApprovalStatus, Currency, check_in,
)


class Property(Base):
    __tablename__ = "properties"

    property_id = Column(Uuid, primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String(30), nullable=False)
    status = Column(String(30), nullable=False)
    developer_status = Column(String(30), nullable=True)
    price = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=Currency.EGP.value)

    developer_id = Column(Uuid, ForeignKey("developers.developer_id", ondelete="SET NULL"), nullable=True)

    # New hierarchical location structure
    governorate_id = Column(Uuid, ForeignKey("governorates.governorate_id", ondelete="SET NULL"), nullable=True)
    city_id = Column(Uuid, ForeignKey("cities.city_id", ondelete="SET NULL"), nullable=True)
    area_id = Column(Uuid, ForeignKey("areas.area_id", ondelete="SET NULL"), nullable=True)
    use_new_location_structure = Column(Boolean, default=False)
    # Legacy flat location {address, city, state, country, coordinates}
    location = Column(JSON, nullable=True)

    specifications = Column(JSON, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    features = Column(JSON, nullable=False, default=list)
    amenities = Column(JSON, nullable=False, default=list)
    video = Column(JSON, nullable=True)
    virtual_tour = Column(JSON, nullable=True)
    floor_plan = Column(JSON, nullable=True)
    master_plan = Column(JSON, nullable=True)
    nearby_facilities = Column(JSON, nullable=True)
    investment = Column(JSON, nullable=True)
    documents = Column(JSON, nullable=True)
    is_featured = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    # Approval workflow
    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    created_by_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    submitted_by_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    approved_by_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    approval_date = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(check_in("type", PropertyType), name="chk_property_type"),
        CheckConstraint(check_in("status", PropertyStatus), name="chk_property_status"),
        CheckConstraint(check_in("approval_status", ApprovalStatus), name="chk_property_approval"),
        CheckConstraint("price > 0", name="chk_property_price"),
    )

    developer = relationship("Developer")
    governorate = relationship("Governorate")
    city = relationship("City")
    area = relationship("Area")
