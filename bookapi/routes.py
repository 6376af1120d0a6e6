import re
from collections.abc import Generator

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from .auth import Principal, TokenSigner, require_principal
from .config import Settings
from .errors import ValidationError
from .models import (
    Book,
    Category,
    CreateBook,
    CreateCategory,
    Envelope,
    HealthStatus,
    LoginRequest,
    LoginResult,
    User,
)
from .service import BookService, CategoryService, UserService


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_token_signer(request: Request) -> TokenSigner:
    return request.app.state.token_signer


def get_session(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.session()


def get_book_service(session: Session = Depends(get_session)) -> BookService:
    return BookService(session)


def get_category_service(session: Session = Depends(get_session)) -> CategoryService:
    return CategoryService(session)


def get_user_service(
    session: Session = Depends(get_session), settings: Settings = Depends(get_settings_dep)
) -> UserService:
    return UserService(session, admin_username=settings.admin_username, admin_password=settings.admin_default_password)


ID_PATTERN = re.compile(r"[+-]?[0-9]+")
MAX_ID = 2**63 - 1


def parse_id(raw: str, resource: str) -> int:
    if not ID_PATTERN.fullmatch(raw):
        raise ValidationError(f"Invalid {resource} ID", f"{raw!r} is not an integer")
    value = int(raw)
    if not -MAX_ID - 1 <= value <= MAX_ID:
        raise ValidationError(f"Invalid {resource} ID", f"{raw!r} is out of range")
    return value


health_router = APIRouter(tags=["health"])
users_router = APIRouter(prefix="/api/users", tags=["users"])
admin_router = APIRouter(prefix="/api/users", tags=["users"])
categories_router = APIRouter(
    prefix="/api/categories", tags=["categories"], dependencies=[Depends(require_principal)]
)
books_router = APIRouter(prefix="/api/books", tags=["books"], dependencies=[Depends(require_principal)])


@health_router.get("/health", response_model=Envelope[HealthStatus])
def health(settings: Settings = Depends(get_settings_dep)) -> Envelope[HealthStatus]:
    return Envelope[HealthStatus](message="API is healthy", data=HealthStatus(service=settings.service_name))


@users_router.post("/login", response_model=Envelope[LoginResult])
def login(
    payload: LoginRequest,
    service: UserService = Depends(get_user_service),
    signer: TokenSigner = Depends(get_token_signer),
) -> Envelope[LoginResult]:
    result = service.login(payload.username, payload.password, signer)
    return Envelope[LoginResult](message="Login successful", data=result)


@admin_router.post("/seed-admin", response_model=Envelope[User])
def seed_admin(response: Response, service: UserService = Depends(get_user_service)) -> Envelope[User]:
    user = service.seed_admin()
    if user is None:
        return Envelope[User](message="Admin user already exists")
    response.status_code = status.HTTP_201_CREATED
    return Envelope[User](message="Admin user created successfully", data=user)


@admin_router.post("/reset-admin-password", response_model=Envelope[None])
def reset_admin_password(service: UserService = Depends(get_user_service)) -> Envelope[None]:
    service.reset_admin_password()
    return Envelope[None](message="Admin password reset successfully")


@categories_router.get("", response_model=Envelope[list[Category]])
def list_categories(service: CategoryService = Depends(get_category_service)) -> Envelope[list[Category]]:
    return Envelope[list[Category]](message="Categories retrieved successfully", data=service.list_all())


@categories_router.post("", response_model=Envelope[Category], status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CreateCategory,
    principal: Principal = Depends(require_principal),
    service: CategoryService = Depends(get_category_service),
) -> Envelope[Category]:
    category = service.create(payload, principal)
    return Envelope[Category](message="Category created successfully", data=category)


@categories_router.get("/{category_id}", response_model=Envelope[Category])
def get_category(category_id: str, service: CategoryService = Depends(get_category_service)) -> Envelope[Category]:
    category = service.get(parse_id(category_id, "category"))
    return Envelope[Category](message="Category retrieved successfully", data=category)


@categories_router.delete("/{category_id}", response_model=Envelope[None])
def delete_category(category_id: str, service: CategoryService = Depends(get_category_service)) -> Envelope[None]:
    service.delete(parse_id(category_id, "category"))
    return Envelope[None](message="Category deleted successfully")


@categories_router.get("/{category_id}/books", response_model=Envelope[list[Book]])
def list_category_books(
    category_id: str, service: CategoryService = Depends(get_category_service)
) -> Envelope[list[Book]]:
    books = service.list_books(parse_id(category_id, "category"))
    return Envelope[list[Book]](message="Books retrieved successfully", data=books)


@books_router.get("", response_model=Envelope[list[Book]])
def list_books(
    category_id: str | None = None, service: BookService = Depends(get_book_service)
) -> Envelope[list[Book]]:
    if category_id is None:
        books = service.list_all()
    else:
        books = service.list_by_category(parse_id(category_id, "category"))
    return Envelope[list[Book]](message="Books retrieved successfully", data=books)


@books_router.post("", response_model=Envelope[Book], status_code=status.HTTP_201_CREATED)
def create_book(
    payload: CreateBook,
    principal: Principal = Depends(require_principal),
    service: BookService = Depends(get_book_service),
) -> Envelope[Book]:
    book = service.create(payload, principal)
    return Envelope[Book](message="Book created successfully", data=book)


@books_router.get("/{book_id}", response_model=Envelope[Book])
def get_book(book_id: str, service: BookService = Depends(get_book_service)) -> Envelope[Book]:
    book = service.get(parse_id(book_id, "book"))
    return Envelope[Book](message="Book retrieved successfully", data=book)


@books_router.delete("/{book_id}", response_model=Envelope[None])
def delete_book(book_id: str, service: BookService = Depends(get_book_service)) -> Envelope[None]:
    service.delete(parse_id(book_id, "book"))
    return Envelope[None](message="Book deleted successfully")
