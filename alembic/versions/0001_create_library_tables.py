from alembic import op
import sqlalchemy as sa


revision = "0001_create_library_tables"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.String(length=100), nullable=False, server_default="system"),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("modified_by", sa.String(length=100), nullable=False, server_default="system"),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        *_audit_columns(),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_categories_id", "categories", ["id"], unique=False)

    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("image_url", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("release_year", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("total_page", sa.Integer(), nullable=False),
        sa.Column("thickness", sa.String(length=10), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id", name="fk_books_category_id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_audit_columns(),
        sa.CheckConstraint("release_year BETWEEN 1980 AND 2024", name="ck_books_release_year"),
        sa.CheckConstraint("price >= 0", name="ck_books_price"),
        sa.CheckConstraint("total_page >= 1", name="ck_books_total_page"),
    )
    op.create_index("ix_books_id", "books", ["id"], unique=False)
    op.create_index("ix_books_category_id", "books", ["category_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_books_category_id", table_name="books")
    op.drop_index("ix_books_id", table_name="books")
    op.drop_table("books")
    op.drop_index("ix_categories_id", table_name="categories")
    op.drop_table("categories")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
