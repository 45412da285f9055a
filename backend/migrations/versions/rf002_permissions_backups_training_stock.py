"""Permissions, backups, training and product stock

Revision ID: rf002_permissions_backups_training_stock
Revises: rf001_initial_factory_schema
Create Date: 2026-10-19

Adds the permission catalog with per-role grants, backup records, training
programs with enrollments and finished-goods stock per product. Existing
products get an empty stock row.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "rf002_permissions_backups_training_stock"
down_revision = "rf001_initial_factory_schema"
branch_labels = None
depends_on = None


def _created_at(name="created_at"):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def upgrade():
    # =========================================================================
    # Permissions and backups
    # =========================================================================
    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("module", sa.String(32), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_permissions_code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("permissions", schema=None) as batch_op:
        batch_op.create_index("ix_permissions_module", ["module"], unique=False)

    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        _created_at("granted_at"),
        sa.ForeignKeyConstraint(["permission_id"], ["permissions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role", "permission_id", name="uq_role_permissions_role_permission"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("role_permissions", schema=None) as batch_op:
        batch_op.create_index("ix_role_permissions_role", ["role"], unique=False)
        batch_op.create_index("ix_role_permissions_permission_id", ["permission_id"], unique=False)

    op.create_table(
        "backups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("type", sa.String(16), nullable=False, server_default="MANUAL"),
        sa.Column("status", sa.String(16), nullable=False, server_default="SUCCESS"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_name", name="uq_backups_file_name"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("backups", schema=None) as batch_op:
        batch_op.create_index("ix_backups_created_at", ["created_at"], unique=False)

    # =========================================================================
    # Training
    # =========================================================================
    op.create_table(
        "training_programs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructor", sa.String(128), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("duration_hours", sa.Integer(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="UPCOMING"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date >= start_date", name="ck_training_programs_dates"),
        sa.CheckConstraint("max_participants >= 1", name="ck_training_programs_max_participants"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("training_programs", schema=None) as batch_op:
        batch_op.create_index("ix_training_programs_start_date", ["start_date"], unique=False)

    op.create_table(
        "training_enrollments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("program_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        _created_at("enrolled_at"),
        sa.ForeignKeyConstraint(["program_id"], ["training_programs.id"]),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("program_id", "employee_id", name="uq_training_enrollments_program_employee"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("training_enrollments", schema=None) as batch_op:
        batch_op.create_index("ix_training_enrollments_program_id", ["program_id"], unique=False)
        batch_op.create_index("ix_training_enrollments_employee_id", ["employee_id"], unique=False)

    # =========================================================================
    # Finished-goods stock
    # =========================================================================
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reserved_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reorder_point", sa.Integer(), nullable=False, server_default=sa.text("10")),
        _created_at("last_updated"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", name="uq_inventory_items_product"),
        sa.CheckConstraint("current_stock >= 0", name="ck_inventory_items_current_nonneg"),
        sa.CheckConstraint("reserved_stock >= 0", name="ck_inventory_items_reserved_nonneg"),
        sa.CheckConstraint("reserved_stock <= current_stock", name="ck_inventory_items_reserved_le_current"),
        sqlite_autoincrement=True,
    )

    op.execute(
        "INSERT INTO inventory_items (product_id, current_stock, reserved_stock, reorder_point) "
        "SELECT id, 0, 0, 10 FROM products"
    )


def downgrade():
    for table in (
        "inventory_items",
        "training_enrollments",
        "training_programs",
        "backups",
        "role_permissions",
        "permissions",
    ):
        op.drop_table(table)
