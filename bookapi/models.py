from datetime import datetime
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

THIN_PAGE_LIMIT = 100
MIN_RELEASE_YEAR = 1980
MAX_RELEASE_YEAR = 2024

Thickness = Literal["thin", "thick"]


def thickness_for(total_page: int) -> Thickness:
    return "thin" if total_page <= THIN_PAGE_LIMIT else "thick"


def _drop_when_none(data: dict[str, Any], *keys: str) -> dict[str, Any]:
    for key in keys:
        if data.get(key) is None:
            data.pop(key, None)
    return data


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: datetime
    created_by: str
    modified_at: datetime
    modified_by: str


class Category(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    created_by: str
    modified_at: datetime
    modified_by: str


class CreateCategory(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class Book(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str = ""
    image_url: str = ""
    release_year: int
    price: int
    total_page: int
    thickness: Thickness
    category_id: int | None = None
    created_at: datetime
    created_by: str
    modified_at: datetime
    modified_by: str
    category_name: str | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_category_name(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        return _drop_when_none(handler(self), "category_name")


class CreateBook(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=10000)
    image_url: str = Field(default="", max_length=500)
    release_year: int = Field(ge=MIN_RELEASE_YEAR, le=MAX_RELEASE_YEAR)
    price: int = Field(ge=0)
    total_page: int = Field(ge=1)
    category_id: int | None = None


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResult(BaseModel):
    token: str
    user: User


class HealthStatus(BaseModel):
    status: str = "ok"
    service: str


DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Uniform response wrapper; ``data`` and ``error`` are left out when unset."""

    success: bool = True
    message: str
    data: DataT | None = None
    error: str | None = None

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        return _drop_when_none(handler(self), "data", "error")

    @classmethod
    def failure(cls, message: str, error: str | None = None) -> "Envelope[Any]":
        return cls(success=False, message=message, error=error)
