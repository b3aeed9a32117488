"""User database model."""

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Registered customer. Immutable after registration."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    login: str = Field(unique=True, index=True)
    password_hash: str
