"""LegalFlow: approval workflow for legal document submissions."""

__version__ = "0.1.0"
