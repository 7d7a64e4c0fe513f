"""Declarative base shared by all LegalFlow models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
