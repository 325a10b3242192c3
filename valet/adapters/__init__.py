"""External Checker adapters."""
from .sql import SQLAlchemyChecker

__all__ = ["SQLAlchemyChecker"]
