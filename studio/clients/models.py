from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin


class Client(Base, AuditMixin):
    """Customer company a project is produced for."""
    __tablename__ = "clients"

    name = Column(String, nullable=False)
    company = Column(String, nullable=True)
    email = Column(String, nullable=True)

    tenant_id = Column(ForeignKey("tenants.id"), nullable=False)

    tenant = relationship("studio.auth.models.Tenant")
    users = relationship("ClientUser", back_populates="client", cascade="all, delete-orphan")
    projects = relationship("studio.projects.models.Project", back_populates="client")


class ClientUser(Base, AuditMixin):
    """Portal login that belongs to a client company."""
    __tablename__ = "client_users"
    __table_args__ = (UniqueConstraint("client_id", "user_id", name="uq_client_users_client_user"),)

    client_id = Column(ForeignKey("clients.id"), nullable=False, index=True)
    user_id = Column(ForeignKey("users.id"), nullable=False, index=True)

    client = relationship("Client", back_populates="users")
    user = relationship("studio.auth.models.User")
