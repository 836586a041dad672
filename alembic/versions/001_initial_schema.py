"""001 – Initial schema: timekeeping tables, indexes, seed data.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Enumerations are stored as VARCHAR with application-side checks
    # (SQLAlchemy Enum(native_enum=False)), so no CREATE TYPE here.

    # ── 1. employees (read-only directory mirror) ─────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_number      VARCHAR(20)  NOT NULL UNIQUE,
            first_name           VARCHAR(100) NOT NULL,
            last_name            VARCHAR(100) NOT NULL,
            email                VARCHAR(255) NOT NULL UNIQUE,
            reporting_manager_id UUID REFERENCES employees(id),
            is_active            BOOLEAN DEFAULT TRUE,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id  UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            token_hash   VARCHAR(512) NOT NULL,
            expires_at   TIMESTAMPTZ NOT NULL,
            is_revoked   BOOLEAN DEFAULT FALSE,
            created_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_user_sessions_employee ON user_sessions(employee_id)")
    op.execute("CREATE INDEX idx_user_sessions_token    ON user_sessions(token_hash)")

    # ── 3. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id                    UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id           UUID NOT NULL REFERENCES employees(id),
            date                  DATE NOT NULL,
            total_work_minutes    INTEGER DEFAULT 0,
            has_missed_punch      BOOLEAN DEFAULT FALSE,
            finalised_for_payroll BOOLEAN DEFAULT FALSE,
            corrected_by          UUID REFERENCES employees(id),
            correction_reason     TEXT,
            created_at            TIMESTAMPTZ DEFAULT NOW(),
            updated_at            TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_attendance_emp_date UNIQUE (employee_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_records_date ON attendance_records(date)")

    # ── 4. attendance_punches ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_punches (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            attendance_record_id UUID NOT NULL REFERENCES attendance_records(id) ON DELETE CASCADE,
            sequence             INTEGER NOT NULL,
            punch_type           VARCHAR(10) NOT NULL,
            punched_at           TIMESTAMPTZ NOT NULL,
            location             VARCHAR(200)
        )
    """)
    op.execute("CREATE INDEX idx_punches_record ON attendance_punches(attendance_record_id, sequence)")

    # ── 5. attendance_correction_requests ─────────────────────────────────
    # attendance_record_id is a weak reference: no FK, no cascade
    op.execute("""
        CREATE TABLE attendance_correction_requests (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id          UUID NOT NULL REFERENCES employees(id),
            attendance_record_id UUID,
            date                 DATE NOT NULL,
            requested_punches    JSONB NOT NULL,
            reason               TEXT NOT NULL,
            status               VARCHAR(20) NOT NULL DEFAULT 'SUBMITTED',
            reviewed_by          UUID REFERENCES employees(id),
            review_comment       TEXT,
            reviewed_at          TIMESTAMPTZ,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_correction_requests_status ON attendance_correction_requests(status)")
    op.execute("CREATE INDEX idx_correction_requests_employee ON attendance_correction_requests(employee_id)")

    # ── 6. shift_assignments (owned by scheduling; read by expiry sweep) ──
    op.execute("""
        CREATE TABLE shift_assignments (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id UUID REFERENCES employees(id) ON DELETE CASCADE,
            start_date  DATE NOT NULL,
            end_date    DATE,
            status      VARCHAR(20) NOT NULL DEFAULT 'PENDING',
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_shift_assignments_expiry ON shift_assignments(status, end_date)")

    # ── 7. notification_logs ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notification_logs (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            type        VARCHAR(40) NOT NULL,
            employee_id UUID REFERENCES employees(id) ON DELETE CASCADE,
            title       VARCHAR(200) NOT NULL,
            message     TEXT NOT NULL,
            entity_type VARCHAR(50),
            entity_id   UUID,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notification_logs_employee_created "
        "ON notification_logs(employee_id, created_at)"
    )

    # ── 8. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID REFERENCES employees(id),
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   VARCHAR(100) NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")

    # ── 9. app_settings ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE app_settings (
            key         VARCHAR(100) PRIMARY KEY,
            value       VARCHAR(100) NOT NULL,
            description TEXT,
            updated_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_by  UUID REFERENCES employees(id)
        )
    """)

    # ══════════════════════════════════════════════════════════════════════
    # SEED DATA
    # ══════════════════════════════════════════════════════════════════════

    op.execute("""
        INSERT INTO app_settings (key, value, description) VALUES
        ('PUNCH_POLICY', 'MULTIPLE', 'Multiple punches allowed per day')
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "app_settings",
        "audit_trail",
        "notification_logs",
        "shift_assignments",
        "attendance_correction_requests",
        "attendance_punches",
        "attendance_records",
        "user_sessions",
        "employees",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")
