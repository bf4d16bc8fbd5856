from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin, enum_type


class TeamRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Tenant(Base, AuditMixin):
    """A studio organization."""
    __tablename__ = "tenants"

    name = Column(String, nullable=False)
    domain = Column(String, unique=True, nullable=True)

    team_members = relationship("TeamMember", back_populates="tenant")
    projects = relationship("studio.projects.models.Project", back_populates="tenant")


class User(Base, AuditMixin):
    __tablename__ = "users"

    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    memberships = relationship("TeamMember", back_populates="user")


class TeamMember(Base, AuditMixin):
    """Organization-level role of a user inside a tenant."""
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("tenant_id", "user_id", name="uq_team_members_tenant_user"),)

    tenant_id = Column(ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(ForeignKey("users.id"), nullable=False, index=True)
    role = Column(enum_type(TeamRole, "team_role"), nullable=False)

    tenant = relationship("Tenant", back_populates="team_members")
    user = relationship("User", back_populates="memberships")
