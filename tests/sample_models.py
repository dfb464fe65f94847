"""Models and repositories shared by the test suite."""

from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from repokit import Repository
from repokit.models import Base, BaseModel, SerializationMixin


class User(SerializationMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    posts: Mapped[List["Post"]] = relationship(back_populates="author")


class Post(BaseModel, Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    author: Mapped[Optional[User]] = relationship(back_populates="posts")


class UserRepository(Repository):
    model_class = User


class GuardedUserRepository(Repository):
    """Repository with an allow-list, used for fillable tests."""

    model_class = User
    fillable = ("name", "email", "status")


class PostRepository(Repository):
    model_class = Post
