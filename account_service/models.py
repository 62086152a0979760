"""Defines the 'users' table and the follower association using SQLAlchemy ORM."""

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship
from account_service.db import Base

# Association table: follower_id follows following_id
follows = Table(
    "follows",
    Base.metadata,
    Column("follower_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("following_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """
    SQLAlchemy model for the 'users' table.
    Holds the account credentials and the public profile fields.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Unique handles; the constraints are the final word on uniqueness
    username = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # bcrypt hash, never the plain password
    password = Column(String(255), nullable=False)

    bio = Column(Text, nullable=True)
    image = Column(String(1024), nullable=True)

    # Users that follow this user
    followed_by = relationship(
        "User",
        secondary=follows,
        primaryjoin=id == follows.c.following_id,
        secondaryjoin=id == follows.c.follower_id,
        back_populates="following",
    )
    following = relationship(
        "User",
        secondary=follows,
        primaryjoin=id == follows.c.follower_id,
        secondaryjoin=id == follows.c.following_id,
        back_populates="followed_by",
    )
