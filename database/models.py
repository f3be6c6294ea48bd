from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import declarative_base, relationship

from core.utils import current_timestamp

Base = declarative_base()


class TimestampMixin:
    created_at = Column(DateTime, default=current_timestamp, nullable=False)
    updated_at = Column(DateTime, default=current_timestamp, onupdate=current_timestamp, nullable=False)


#pivot: users <-> roles
role_user = Table(
    "role_user",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("granted_by", String(100), nullable=True),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

#pivot: posts <-> tags
post_tag = Table(
    "post_tag",
    Base.metadata,
    Column("post_id", Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


#ORM: Users
class UserORM(TimestampMixin, Base):
    __tablename__ = "users"
    __kind__ = "User"
    #is_admin is deliberately left out
    __fillable__ = ("name", "email", "bio", "is_active")

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=False, unique=True)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    posts = relationship("PostORM", back_populates="author", order_by="PostORM.id")
    roles = relationship("RoleORM", secondary=role_user, back_populates="users", order_by="RoleORM.id")


#ORM: Roles
class RoleORM(TimestampMixin, Base):
    __tablename__ = "roles"
    __kind__ = "Role"
    __fillable__ = ("name", "label")

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)
    label = Column(String(100), nullable=True)

    users = relationship("UserORM", secondary=role_user, back_populates="roles")


#ORM: Posts
class PostORM(TimestampMixin, Base):
    __tablename__ = "posts"
    __kind__ = "Post"
    __fillable__ = ("title", "body", "published")

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=True)
    published = Column(Boolean, default=False, nullable=False)

    author = relationship("UserORM", back_populates="posts")
    tags = relationship("TagORM", secondary=post_tag, back_populates="posts", order_by="TagORM.id")


#ORM: Tags (no timestamps)
class TagORM(Base):
    __tablename__ = "tags"
    __kind__ = "Tag"
    __fillable__ = ("name",)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)

    posts = relationship("PostORM", secondary=post_tag, back_populates="tags")


__all__ = [
    "Base",
    "TimestampMixin",
    "role_user",
    "post_tag",
    "UserORM",
    "RoleORM",
    "PostORM",
    "TagORM",
]
