from enum import Enum
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin, enum_type


class ProjectRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    CLIENT_VIEWER = "client_viewer"
    CLIENT_APPROVER = "client_approver"


# Audience groups used by access checks and notification fan-out
INTERNAL_WRITER_ROLES = frozenset({ProjectRole.OWNER, ProjectRole.ADMIN, ProjectRole.EDITOR})
CLIENT_ROLES = frozenset({ProjectRole.CLIENT_VIEWER, ProjectRole.CLIENT_APPROVER})
APPROVER_ROLES = frozenset({ProjectRole.OWNER, ProjectRole.ADMIN, ProjectRole.CLIENT_APPROVER})


class Project(Base, AuditMixin):
    __tablename__ = "projects"

    name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    tenant_id = Column(ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(ForeignKey("clients.id"), nullable=True)
    # creator and current owner; either one gets full rights
    user_id = Column(ForeignKey("users.id"), nullable=True)
    owner_user_id = Column(ForeignKey("users.id"), nullable=True)

    tenant = relationship("studio.auth.models.Tenant", back_populates="projects")
    client = relationship("studio.clients.models.Client", back_populates="projects")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
    deliverables = relationship("studio.deliverables.models.Deliverable", back_populates="project")


class ProjectMember(Base, AuditMixin):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),)

    project_id = Column(ForeignKey("projects.id"), nullable=False, index=True)
    user_id = Column(ForeignKey("users.id"), nullable=False, index=True)
    role = Column(enum_type(ProjectRole, "project_role"), nullable=False)

    project = relationship("Project", back_populates="members")
    user = relationship("studio.auth.models.User")
