"""ORM model for membership applications."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from membership.models.base import Base, JSONType

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
ENROLLMENT_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class Enrollment(Base):
    """
    Application to join the association.

    user_id is null until an account is linked, either at submission or at
    approval depending on ENROLLMENT_PROVISIONING.
    """

    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(64), nullable=False)
    country = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)
    interests = Column(JSONType, nullable=False, default=list)
    company_logo = Column(JSONType, nullable=True)
    business_documents = Column(JSONType, nullable=False, default=list)
    status = Column(String(32), nullable=False, default=STATUS_PENDING, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    user = relationship("User", lazy="joined")
