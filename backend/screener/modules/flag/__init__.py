"""Flag store module."""

from screener.modules.flag.models import FlagRecord, FlagStatus
from screener.modules.flag.schemas import (
    FlagFilters,
    FlagListResponse,
    FlagRecordResponse,
    RejectRequest,
)

__all__ = [
    "FlagRecord",
    "FlagStatus",
    "FlagFilters",
    "FlagListResponse",
    "FlagRecordResponse",
    "RejectRequest",
]
