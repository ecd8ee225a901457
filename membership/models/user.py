"""ORM model for association accounts (auth and RBAC)."""

from sqlalchemy import Column, DateTime, Integer, String, func

from membership.models.base import Base, JSONType

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_ADMIN, ROLE_MEMBER)


class User(Base):
    """
    Account holder. Email is unique at the database level.

    role: 'admin' or 'member'
    photo: object-storage descriptor {"publicId", "url"} or null
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_MEMBER)
    phone = Column(String(64), nullable=True)
    photo = Column(JSONType, nullable=True)
    company_name = Column(String(255), nullable=True)
    company_address = Column(String(1024), nullable=True)
    company_registration_number = Column(String(255), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
