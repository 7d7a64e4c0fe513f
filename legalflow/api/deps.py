from functools import lru_cache
from typing import Dict, Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from legalflow.db.session import SessionLocal
from legalflow.common.forms import FormConfig, load_forms_config
from legalflow.core.config import get_settings
from legalflow.core.approval import ApprovalService


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_forms() -> Dict[int, FormConfig]:
    """Form catalogue dependency, loaded once per process."""
    return load_forms_config(get_settings().forms_config_path)


def get_approval_service(
    db: Session = Depends(get_db),
    forms=Depends(get_forms),
) -> ApprovalService:
    """Approval service bound to the request's session."""
    return ApprovalService(db, forms=forms)
