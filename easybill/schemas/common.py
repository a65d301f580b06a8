"""Shared response envelopes."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Page(BaseModel, Generic[T]):
    """One page of results plus paging metadata."""

    items: List[T]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=0)
    size: int = Field(..., ge=1)

    @property
    def total_pages(self) -> int:
        return (self.total + self.size - 1) // self.size


class MessageResponse(BaseModel):
    message: str
