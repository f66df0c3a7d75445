"""API request/response models."""

from visitrack.api.models.visit import (
    CheckInRequest,
    CheckOutRequest,
    OccupancyResponse,
    PreRegisterRequest,
    PreRegisterResponse,
    ProblemDetail,
    VisitResponse,
)

__all__ = [
    "CheckInRequest",
    "CheckOutRequest",
    "OccupancyResponse",
    "PreRegisterRequest",
    "PreRegisterResponse",
    "ProblemDetail",
    "VisitResponse",
]
