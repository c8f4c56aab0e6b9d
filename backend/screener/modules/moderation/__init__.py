"""Content moderation module.

Routers and services import the queue and flag modules; import them directly
from their submodules.
"""

from screener.modules.moderation.decision import DecisionPolicy, Verdict, decide, format_reason
from screener.modules.moderation.schemas import (
    ContentRef,
    ContentType,
    PreviewCheckRequest,
    PreviewCheckResponse,
    SubmissionResponse,
)

__all__ = [
    "DecisionPolicy",
    "Verdict",
    "decide",
    "format_reason",
    "ContentRef",
    "ContentType",
    "PreviewCheckRequest",
    "PreviewCheckResponse",
    "SubmissionResponse",
]
