# models/developer.py
from sqlalchemy import Column, String, Text, Uuid
from uuid import uuid4
from app.db.base_class import Base


class Developer(Base):
    __tablename__ = "developers"

    developer_id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(100), nullable=False, unique=True)
    logo = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
