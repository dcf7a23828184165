# models/location.py
from sqlalchemy import Column, String, Text, Float, ForeignKey, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.db.base_class import Base


class Governorate(Base):
    __tablename__ = "governorates"

    governorate_id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(100), nullable=False, unique=True)
    annual_appreciation_rate = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("annual_appreciation_rate BETWEEN 0 AND 100", name="chk_governorate_rate"),
    )

    cities = relationship("City", back_populates="governorate")


class City(Base):
    __tablename__ = "cities"

    city_id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(100), nullable=False)
    governorate_id = Column(Uuid, ForeignKey("governorates.governorate_id", ondelete="SET NULL"), nullable=True)
    annual_appreciation_rate = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("annual_appreciation_rate BETWEEN 0 AND 100", name="chk_city_rate"),
        UniqueConstraint("slug", name="uq_city_slug"),
    )

    governorate = relationship("Governorate", back_populates="cities")
    areas = relationship("Area", back_populates="city")


class Area(Base):
    __tablename__ = "areas"

    area_id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(100), nullable=False)
    city_id = Column(Uuid, ForeignKey("cities.city_id", ondelete="CASCADE"), nullable=False)
    annual_appreciation_rate = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("annual_appreciation_rate BETWEEN 0 AND 100", name="chk_area_rate"),
        UniqueConstraint("slug", name="uq_area_slug"),
    )

    city = relationship("City", back_populates="areas")
