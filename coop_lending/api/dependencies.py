"""
Shared API dependencies
"""

from typing import Optional

from fastapi import Header, HTTPException

from ..config import LendingConfig, get_config
from ..context import Clock, Operator
from ..exceptions import LendingError, NotFoundError, StateError
from ..service import LoanService
from ..storage import StorageInterface, create_storage


class LendingSystem:
    """Lending core with all components initialized"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        clock: Optional[Clock] = None,
        config: Optional[LendingConfig] = None
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)
        self.service = LoanService(self.storage, clock=clock, config=self.config)


# Global lending system instance, created on first request
_lending_system: Optional[LendingSystem] = None


def get_lending_system() -> LendingSystem:
    global _lending_system
    if _lending_system is None:
        _lending_system = LendingSystem()
    return _lending_system


def get_operator(x_operator_id: str = Header(..., description="ID of the staff member acting")) -> Operator:
    """Acting operator, supplied by the authenticating gateway"""
    if not x_operator_id.strip():
        raise HTTPException(status_code=400, detail="X-Operator-Id header is required")
    return Operator(id=x_operator_id.strip())


def to_http_error(error: LendingError) -> HTTPException:
    """Map a domain error to its HTTP status"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StateError):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=422, detail=str(error))
