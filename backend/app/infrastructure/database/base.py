"""Declarative base shared by the resource and chunk tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
