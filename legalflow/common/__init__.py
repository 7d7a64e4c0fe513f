"""Common utilities for LegalFlow."""

from .logger import configure_logging, request_id_var
from .forms import load_forms_config, get_form

__all__ = ["configure_logging", "get_form", "load_forms_config", "request_id_var"]
