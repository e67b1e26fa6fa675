"""
Standard API Response Models

Provides consistent response envelope for all API endpoints.
"""

from typing import TypeVar, Generic, Optional, List
from pydantic import BaseModel, ConfigDict, Field

from .response_middleware import get_request_id


T = TypeVar('T')


class PaginationMeta(BaseModel):
    """Standard pagination metadata"""
    current_page: int = Field(description="Current page number (1-indexed)")
    per_page: int = Field(description="Number of items per page")
    total: int = Field(description="Total number of items")
    total_pages: int = Field(description="Total number of pages")
    has_next: bool = Field(description="Whether there is a next page")
    has_prev: bool = Field(description="Whether there is a previous page")


class ResponseMeta(BaseModel):
    """Metadata for API responses"""
    request_id: Optional[str] = Field(default_factory=get_request_id, description="Request tracking ID")
    count: Optional[int] = Field(None, description="Number of items in data, for list responses")
    pagination: Optional[PaginationMeta] = Field(None, description="Pagination information if applicable")


class StandardResponse(BaseModel, Generic[T]):
    """
    Standard response envelope for all API endpoints

    Usage:
        return StandardResponse.ok(data=restaurant)
        return StandardResponse.paginated(items, page=1, per_page=25, total=80)
    """
    success: bool = Field(description="Whether the request was successful")
    data: Optional[T] = Field(None, description="Response payload")
    message: Optional[str] = Field(None, description="Optional status message")
    meta: ResponseMeta = Field(default_factory=ResponseMeta, description="Response metadata")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "data": {"id": 1, "name": "Cafe X"},
                "message": None,
                "meta": {"request_id": "3f1c9a..."},
            }
        }
    )

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None) -> "StandardResponse[T]":
        """Create a successful response"""
        meta = ResponseMeta()
        if isinstance(data, list):
            meta.count = len(data)
        return cls(success=True, data=data, message=message, meta=meta)

    @classmethod
    def paginated(
        cls,
        data: List[T],
        page: int,
        per_page: int,
        total: int,
        message: Optional[str] = None,
    ) -> "StandardResponse[List[T]]":
        """Create a paginated response"""
        total_pages = (total + per_page - 1) // per_page if per_page > 0 else 0

        pagination = PaginationMeta(
            current_page=page,
            per_page=per_page,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
        meta = ResponseMeta(count=len(data), pagination=pagination)
        return cls(success=True, data=data, message=message, meta=meta)

