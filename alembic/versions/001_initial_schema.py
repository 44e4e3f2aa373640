"""001 – Initial schema: directory, leave and notification tables, enums.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:30:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "manager", "admin"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    (
        "notification_type",
        ["leave_request", "approval", "rejection", "info"],
    ),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(150) NOT NULL UNIQUE,
            description TEXT,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email         VARCHAR(255) NOT NULL UNIQUE,
            name          VARCHAR(200) NOT NULL,
            role          user_role NOT NULL DEFAULT 'employee',
            department_id UUID REFERENCES departments(id),
            manager_id    UUID REFERENCES users(id),
            is_active     BOOLEAN DEFAULT TRUE,
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            updated_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_users_manager ON users(manager_id)")

    # ── 3. leave_types ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_types (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name           VARCHAR(100) NOT NULL UNIQUE,
            description    TEXT,
            default_days   NUMERIC(5,1) DEFAULT 0,
            color          VARCHAR(20) DEFAULT '#3B82F6',
            carry_forward  BOOLEAN DEFAULT FALSE,
            max_carry_days NUMERIC(5,1) DEFAULT 0,
            is_active      BOOLEAN DEFAULT TRUE,
            created_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 4. leave_balances ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_balances (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id       UUID NOT NULL REFERENCES users(id),
            leave_type_id UUID NOT NULL REFERENCES leave_types(id),
            year          INTEGER NOT NULL,
            total_days    NUMERIC(5,1) NOT NULL DEFAULT 0,
            used_days     NUMERIC(5,1) NOT NULL DEFAULT 0,
            pending_days  NUMERIC(5,1) NOT NULL DEFAULT 0,
            carried_days  NUMERIC(5,1) NOT NULL DEFAULT 0,
            version_id    INTEGER NOT NULL DEFAULT 1,
            updated_at    TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_balance UNIQUE (user_id, leave_type_id, year),
            CONSTRAINT ck_leave_balance_counters
                CHECK (used_days >= 0 AND pending_days >= 0)
        )
    """)

    # ── 5. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id          UUID NOT NULL REFERENCES users(id),
            leave_type_id    UUID NOT NULL REFERENCES leave_types(id),
            department_id    UUID REFERENCES departments(id),
            start_date       DATE NOT NULL,
            end_date         DATE NOT NULL,
            total_days       NUMERIC(5,1) NOT NULL,
            half_day         BOOLEAN NOT NULL DEFAULT FALSE,
            reason           TEXT NOT NULL,
            status           leave_status NOT NULL DEFAULT 'pending',
            rejection_reason TEXT,
            applied_at       TIMESTAMPTZ NOT NULL,
            approved_at      TIMESTAMPTZ,
            approved_by      UUID REFERENCES users(id),
            cancelled_at     TIMESTAMPTZ,
            updated_at       TIMESTAMPTZ DEFAULT NOW(),
            version_id       INTEGER NOT NULL DEFAULT 1,
            CONSTRAINT ck_leave_request_dates CHECK (start_date <= end_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_user_dates "
        "ON leave_requests(user_id, start_date, end_date)"
    )
    op.execute("CREATE INDEX ix_leave_requests_status ON leave_requests(status)")

    # ── 6. notifications ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            recipient_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type         notification_type DEFAULT 'info',
            title        VARCHAR(200) NOT NULL,
            message      TEXT NOT NULL,
            link         VARCHAR(500),
            entity_id    UUID,
            is_read      BOOLEAN DEFAULT FALSE,
            read_at      TIMESTAMPTZ,
            created_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient_unread "
        "ON notifications(recipient_id, is_read)"
    )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "notifications",
        "leave_requests",
        "leave_balances",
        "leave_types",
        "users",
        "departments",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
