"""Engine and session factory bound to the configured database."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from legalflow.core.config import get_settings

settings = get_settings()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
