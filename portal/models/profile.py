"""Profile model - identity record owned by the external auth provider."""
import enum
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class ProfileRole(str, enum.Enum):
    """Portal roles."""
    CLIENT = 'client'
    ADMIN = 'admin'
    DESIGNER = 'designer'


class Profile(Base):
    """Profile (client company or vendor operator)."""

    __tablename__ = 'profile'

    id = Column(IdType, primary_key=True, autoincrement=True)
    role = Column(String(20), nullable=False, default=ProfileRole.CLIENT.value)
    email = Column(String(255), nullable=False, unique=True)
    company_name = Column(String(200), nullable=True)
    contact_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    client_products = relationship('ClientProduct', back_populates='client')
    orders = relationship('Order', back_populates='client')

    @property
    def is_admin(self):
        return self.role == ProfileRole.ADMIN.value

    def __repr__(self):
        return f"<Profile(id={self.id}, email='{self.email}', role='{self.role}')>"
