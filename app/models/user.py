# models/user.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, JSON, Uuid, CheckConstraint
from uuid import uuid4
from app.db.base_class import Base
from app.models.enums import UserRole, check_in


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False)  # stored lower-cased
    phone = Column(String(20), nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash
    role = Column(String(30), nullable=False, default=UserRole.USER.value)
    hierarchy = Column(Integer, nullable=False, default=5)
    permissions = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True)

    profile_image = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    preferences = Column(JSON, nullable=True)
    activity_stats = Column(JSON, nullable=True)
    is_email_verified = Column(Boolean, default=False)
    subscribe_to_newsletter = Column(Boolean, default=False)
    last_login = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(check_in("role", UserRole), name="chk_user_role"),
        CheckConstraint("hierarchy BETWEEN 1 AND 5", name="chk_user_hierarchy"),
    )
