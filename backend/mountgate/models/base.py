"""Declarative base for all mountgate models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
