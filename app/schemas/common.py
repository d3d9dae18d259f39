"""
Common response envelopes shared by every endpoint
"""
from atams.schemas import DataResponse, PaginationResponse

__all__ = ["DataResponse", "PaginationResponse"]
