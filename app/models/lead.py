# models/lead.py
from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.db.base_class import Base
from app.models.enums import (
    PropertyType, LeadService, LeadPurpose, LeadTimeline, LeadStatus, LeadPriority, LeadSource, check_in,
)


class Lead(Base):
    __tablename__ = "leads"

    lead_id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    required_service = Column(String(20), nullable=False)
    property_type = Column(String(30), nullable=False)
    purpose = Column(String(30), nullable=False)
    budget = Column(JSON, nullable=True)  # {min, max, currency}
    preferred_location = Column(JSON, nullable=False, default=list)
    location = Column(String(255), nullable=True)
    timeline = Column(String(20), nullable=False, default=LeadTimeline.FLEXIBLE.value)
    status = Column(String(30), nullable=False, default=LeadStatus.NEW.value)
    priority = Column(String(10), nullable=False, default=LeadPriority.MEDIUM.value)
    source = Column(String(30), nullable=False, default=LeadSource.LANDING_PAGE.value)
    notes = Column(JSON, nullable=True)
    assigned_to_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    follow_up_date = Column(DateTime, nullable=True)
    last_contact_date = Column(DateTime, nullable=True)
    is_read = Column(Boolean, default=False)
    is_archived = Column(Boolean, default=False)
    archived_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(check_in("required_service", LeadService), name="chk_lead_service"),
        CheckConstraint(check_in("property_type", PropertyType), name="chk_lead_property_type"),
        CheckConstraint(check_in("purpose", LeadPurpose), name="chk_lead_purpose"),
        CheckConstraint(check_in("status", LeadStatus), name="chk_lead_status"),
    )

    assigned_to = relationship("User")
