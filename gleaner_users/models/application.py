"""ORM model for registered applications."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB

from gleaner_users.models.base import Base

JSONList = JSON().with_variant(JSONB(), "postgresql")


class Application(Base):
    """
    External service registered behind the users API.

    anonymous: route patterns that skip authorization.
    autoroles: roles assigned to every new account.
    """

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    prefix = Column(String(255), nullable=False, unique=True, index=True)
    host = Column(String(2048), nullable=False, default="")
    anonymous = Column(JSONList, nullable=False, default=list)
    autoroles = Column(JSONList, nullable=False, default=list)
    time_created = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    time_updated = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
