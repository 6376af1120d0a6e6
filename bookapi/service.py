import logging
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import Principal, TokenSigner, audit_actor
from .entities import SYSTEM_ACTOR, BookRecord, CategoryRecord, UserRecord
from .errors import AuthError, AuthFailure, DataAccessError, NotFoundError, ValidationError
from .models import Book, Category, CreateBook, CreateCategory, LoginResult, User, thickness_for
from .passwords import hash_password, verify_password

logger = logging.getLogger("bookapi.service")


@lru_cache(maxsize=1)
def _dummy_digest() -> str:
    return hash_password("unused-password-for-unknown-users")


@contextmanager
def store_errors(message: str) -> Iterator[None]:
    """Surface any store failure as a DataAccessError carrying the driver's text."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise DataAccessError(message, str(exc)) from exc


def _book_query():
    return select(BookRecord, CategoryRecord.name).outerjoin(
        CategoryRecord, BookRecord.category_id == CategoryRecord.id
    )


class BookService:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[Book]:
        with store_errors("Failed to fetch books"):
            rows = self.session.execute(_book_query().order_by(BookRecord.id.asc())).all()
        return [self._to_schema(record, category_name) for record, category_name in rows]

    def list_by_category(self, category_id: int) -> list[Book]:
        with store_errors("Failed to check category existence"):
            found = self.session.scalar(select(exists().where(CategoryRecord.id == category_id)))
        if not found:
            raise NotFoundError("Category")

        with store_errors("Failed to fetch books"):
            rows = self.session.execute(
                _book_query().where(BookRecord.category_id == category_id).order_by(BookRecord.id.asc())
            ).all()
        return [self._to_schema(record, category_name) for record, category_name in rows]

    def get(self, book_id: int) -> Book:
        with store_errors("Failed to fetch book"):
            row = self.session.execute(_book_query().where(BookRecord.id == book_id)).first()
        if row is None:
            raise NotFoundError("Book")
        record, category_name = row
        return self._to_schema(record, category_name)

    def create(self, payload: CreateBook, principal: Principal | None = None) -> Book:
        # Check-then-insert is not transactional; a category deleted in between is accepted.
        if payload.category_id is not None:
            with store_errors("Failed to validate category"):
                found = self.session.scalar(select(exists().where(CategoryRecord.id == payload.category_id)))
            if not found:
                raise ValidationError("Invalid category ID", "category with specified ID does not exist")

        actor = audit_actor(principal)
        fields = payload.model_dump()
        thickness = thickness_for(payload.total_page)
        record = BookRecord(**fields, thickness=thickness, created_by=actor, modified_by=actor)
        with store_errors("Failed to create book"):
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        logger.info("book.created", extra={"book_id": record.id, "actor": actor})

        return Book(
            id=record.id,
            **fields,
            thickness=thickness,
            created_at=record.created_at,
            created_by=actor,
            modified_at=record.modified_at,
            modified_by=actor,
            category_name=self._category_name(payload.category_id),
        )

    def delete(self, book_id: int) -> None:
        with store_errors("Failed to check book existence"):
            found = self.session.scalar(select(exists().where(BookRecord.id == book_id)))
        if not found:
            raise NotFoundError("Book")

        with store_errors("Failed to delete book"):
            result = self.session.execute(delete(BookRecord).where(BookRecord.id == book_id))
            self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError("Book")
        logger.info("book.deleted", extra={"book_id": book_id})

    def _category_name(self, category_id: int | None) -> str | None:
        if category_id is None:
            return None
        # Display only; a failed lookup leaves the name unset.
        try:
            return self.session.scalar(select(CategoryRecord.name).where(CategoryRecord.id == category_id))
        except SQLAlchemyError as exc:
            logger.warning("book.category_name_lookup_failed", extra={"category_id": category_id, "error": str(exc)})
            self.session.rollback()
            return None

    @staticmethod
    def _to_schema(record: BookRecord, category_name: str | None = None) -> Book:
        book = Book.model_validate(record, from_attributes=True)
        book.category_name = category_name
        return book


class CategoryService:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[Category]:
        with store_errors("Failed to fetch categories"):
            records = self.session.execute(select(CategoryRecord).order_by(CategoryRecord.id.asc())).scalars().all()
        return [self._to_schema(record) for record in records]

    def get(self, category_id: int) -> Category:
        with store_errors("Failed to fetch category"):
            record = self.session.get(CategoryRecord, category_id)
        if record is None:
            raise NotFoundError("Category")
        return self._to_schema(record)

    def create(self, payload: CreateCategory, principal: Principal | None = None) -> Category:
        actor = audit_actor(principal)
        record = CategoryRecord(name=payload.name, created_by=actor, modified_by=actor)
        with store_errors("Failed to create category"):
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        logger.info("category.created", extra={"category_id": record.id, "actor": actor})
        return self._to_schema(record)

    def delete(self, category_id: int) -> None:
        with store_errors("Failed to check category existence"):
            found = self.session.scalar(select(exists().where(CategoryRecord.id == category_id)))
        if not found:
            raise NotFoundError("Category")

        with store_errors("Failed to delete category"):
            result = self.session.execute(delete(CategoryRecord).where(CategoryRecord.id == category_id))
            self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError("Category")
        logger.info("category.deleted", extra={"category_id": category_id})

    def list_books(self, category_id: int) -> list[Book]:
        return BookService(self.session).list_by_category(category_id)

    @staticmethod
    def _to_schema(record: CategoryRecord) -> Category:
        return Category.model_validate(record, from_attributes=True)


class UserService:
    INVALID_CREDENTIALS = "Invalid credentials"

    def __init__(self, session: Session, admin_username: str, admin_password: str):
        self.session = session
        self.admin_username = admin_username
        self.admin_password = admin_password

    def login(self, username: str, password: str, signer: TokenSigner) -> LoginResult:
        record = self.get_by_username(username)
        # Unknown user and wrong password must be indistinguishable, in body and in bcrypt work.
        digest = record.password if record is not None else _dummy_digest()
        password_ok = verify_password(digest, password)
        if record is None or not password_ok:
            raise AuthError(
                AuthFailure.INVALID_CREDENTIALS,
                "invalid username or password",
                message=self.INVALID_CREDENTIALS,
            )

        token = signer.issue(record.id, record.username)
        logger.info("user.login", extra={"user_id": record.id})
        return LoginResult(token=token, user=self._to_schema(record))

    def get_by_username(self, username: str) -> UserRecord | None:
        with store_errors("Failed to fetch user"):
            return self.session.execute(select(UserRecord).where(UserRecord.username == username)).scalar_one_or_none()

    def seed_admin(self) -> User | None:
        """Create the admin user; returns None when it already exists."""
        if self.get_by_username(self.admin_username) is not None:
            return None

        record = UserRecord(
            username=self.admin_username,
            password=hash_password(self.admin_password),
            created_by=SYSTEM_ACTOR,
            modified_by=SYSTEM_ACTOR,
        )
        with store_errors("Failed to create admin user"):
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        logger.info("user.admin_seeded", extra={"user_id": record.id})
        return self._to_schema(record)

    def reset_admin_password(self) -> None:
        with store_errors("Failed to reset admin password"):
            result = self.session.execute(
                update(UserRecord)
                .where(UserRecord.username == self.admin_username)
                .values(
                    password=hash_password(self.admin_password),
                    modified_at=func.now(),
                    modified_by=SYSTEM_ACTOR,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError("Admin user", "admin user has not been seeded")
        logger.info("user.admin_password_reset")

    @staticmethod
    def _to_schema(record: UserRecord) -> User:
        return User.model_validate(record, from_attributes=True)
