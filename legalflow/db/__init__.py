"""Database layer for LegalFlow."""
