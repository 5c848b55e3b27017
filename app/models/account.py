from enum import Enum as PyEnum
from typing import List, Optional
from pydantic import BaseModel
from sqlalchemy import Column, DateTime, Enum
from sqlmodel import Field, SQLModel, Relationship
from datetime import datetime
import uuid


class Role(str, PyEnum):
    DEVELOPER = "developer"
    EVALUATOR = "evaluator"


class AccessToken(SQLModel, table=True):
    id: str = Field(primary_key=True, unique=True, nullable=False)
    exp: datetime = Field(sa_type=DateTime(timezone=True), nullable=False)
    account_id: str = Field(foreign_key="profiles.id", nullable=False, index=True)
    account: Optional["Account"] = Relationship(back_populates="access_tokens")


class Account(SQLModel, table=True):
    """
    An identity known to the portal. Accounts are provisioned out of band;
    the role is never changed by the application.
    """
    __tablename__ = "profiles"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    email: str = Field(nullable=False, unique=True, index=True)
    password: str = Field(nullable=False)
    role: Role = Field(sa_column=Column(Enum(Role), nullable=False))
    access_tokens: List[AccessToken] = Relationship(back_populates="account", sa_relationship_kwargs={"cascade": "all, delete-orphan"})


class AccountLogin(BaseModel):
    email: str
    password: str


class AccountMetadata(BaseModel):
    id: str
    email: str
    role: Role
