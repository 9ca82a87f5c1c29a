"""
TrendSignal Services

Service layer containing all business logic.
Each service has a defined interface (contract) and implementation.
"""

from trendsignal.services.base import (
    BaseService,
    InsufficientDataError,
    ServiceError,
    ValidationError,
)

__all__ = ["BaseService", "InsufficientDataError", "ServiceError", "ValidationError"]
