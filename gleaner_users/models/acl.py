"""ORM models backing the relational ACL store: roles, grants and user-role links."""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from gleaner_users.models.base import Base


class AclRole(Base):
    """A named role. Names are unique and case-sensitive."""

    __tablename__ = "acl_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)

    grants = relationship(
        "AclGrant",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    assignments = relationship(
        "AclUserRole",
        back_populates="role",
        cascade="all, delete-orphan",
    )


class AclGrant(Base):
    """One permission on one resource pattern, granted to a role."""

    __tablename__ = "acl_grants"
    __table_args__ = (
        UniqueConstraint("role_id", "resource", "permission", name="uq_acl_grants_role_resource_permission"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("acl_roles.id", ondelete="CASCADE"), nullable=False, index=True)
    resource = Column(String(1024), nullable=False)
    permission = Column(String(255), nullable=False)

    role = relationship("AclRole", back_populates="grants")


class AclUserRole(Base):
    """Assignment of a role to a username."""

    __tablename__ = "acl_user_roles"
    __table_args__ = (
        UniqueConstraint("username", "role_id", name="uq_acl_user_roles_username_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("acl_roles.id", ondelete="CASCADE"), nullable=False, index=True)

    role = relationship("AclRole", back_populates="assignments", lazy="joined")
