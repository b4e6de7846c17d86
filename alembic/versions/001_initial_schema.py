"""001 – Initial schema: tenants, employees, leave lifecycle, SLA, eligibility.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17 09:00:00.000000+00:00
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
    ("user_role", ["employee", "supervisor", "admin", "superadmin"]),
    ("leave_type", ["paid", "unpaid", "sick", "family", "doctor"]),
    ("leave_status", ["pending", "approved", "rejected"]),
    ("sla_status", ["pending", "on_time", "breached"]),
    ("time_tracking_status", ["checked_in", "checked_out", "absent"]),
    ("note_type", ["performance", "behavior", "achievement", "concern", "general"]),
    ("sentiment", ["positive", "neutral", "negative"]),
    (
        "notification_type",
        [
            "leave_request",
            "leave_approved",
            "leave_rejected",
            "leave_updated",
            "leave_deleted",
            "sla_warning",
            "sla_critical",
            "sla_breach",
            "system",
        ],
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

    # ── 1. organizations ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE organizations (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(150) NOT NULL,
            slug        VARCHAR(150) NOT NULL UNIQUE,
            timezone    VARCHAR(50) DEFAULT 'UTC',
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id      UUID NOT NULL REFERENCES organizations(id),
            name                 VARCHAR(200) NOT NULL,
            email                VARCHAR(255) NOT NULL UNIQUE,
            role                 user_role DEFAULT 'employee',
            department           VARCHAR(150),
            supervisor_id        UUID REFERENCES employees(id),
            is_active            BOOLEAN DEFAULT TRUE,
            is_approved          BOOLEAN DEFAULT FALSE,
            paid_leave_balance   INTEGER DEFAULT 24,
            sick_leave_balance   INTEGER DEFAULT 10,
            family_leave_balance INTEGER DEFAULT 5,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_employees_organization_id ON employees(organization_id)")
    op.execute("CREATE INDEX ix_employees_org_role ON employees(organization_id, role)")

    # ── 3. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id),
            employee_id      UUID NOT NULL REFERENCES employees(id),
            leave_type       leave_type NOT NULL,
            start_date       DATE NOT NULL,
            end_date         DATE NOT NULL,
            days             INTEGER NOT NULL,
            reason           TEXT NOT NULL,
            comment          TEXT,
            status           leave_status DEFAULT 'pending',
            reviewed_by      UUID REFERENCES employees(id),
            review_comment   TEXT,
            reviewed_at      TIMESTAMPTZ,
            deducted_days    INTEGER DEFAULT 0,
            deducted_from    leave_type,
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_requests_days_positive CHECK (days >= 1),
            CONSTRAINT ck_leave_requests_range CHECK (end_date >= start_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_org_status ON leave_requests(organization_id, status)"
    )
    op.execute(
        "CREATE INDEX ix_leave_requests_employee_dates "
        "ON leave_requests(employee_id, start_date, end_date)"
    )

    # ── 4. sla_configs ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE sla_configs (
            id                    UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id       UUID NOT NULL UNIQUE REFERENCES organizations(id),
            target_response_time  DOUBLE PRECISION DEFAULT 24,
            warning_threshold     DOUBLE PRECISION DEFAULT 18,
            critical_threshold    DOUBLE PRECISION DEFAULT 22,
            business_hours_only   BOOLEAN DEFAULT FALSE,
            business_start_hour   INTEGER DEFAULT 9,
            business_end_hour     INTEGER DEFAULT 17,
            exclude_weekends      BOOLEAN DEFAULT FALSE,
            timezone              VARCHAR(50) DEFAULT 'UTC',
            notify_on_warning     BOOLEAN DEFAULT TRUE,
            notify_on_critical    BOOLEAN DEFAULT TRUE,
            notify_on_breach      BOOLEAN DEFAULT TRUE,
            updated_by            UUID NOT NULL REFERENCES employees(id),
            updated_at            TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 5. sla_metrics (no FK to leave_requests: kept as history) ─────────
    op.execute("""
        CREATE TABLE sla_metrics (
            id                    UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id       UUID NOT NULL REFERENCES organizations(id),
            leave_request_id      UUID NOT NULL UNIQUE,
            submitted_at          TIMESTAMPTZ NOT NULL,
            responded_at          TIMESTAMPTZ,
            response_time_hours   DOUBLE PRECISION,
            sla_score             DOUBLE PRECISION,
            status                sla_status DEFAULT 'pending',
            target_response_time  DOUBLE PRECISION NOT NULL,
            warning_threshold     DOUBLE PRECISION NOT NULL,
            critical_threshold    DOUBLE PRECISION NOT NULL,
            business_hours_only   BOOLEAN NOT NULL,
            business_start_hour   INTEGER NOT NULL,
            business_end_hour     INTEGER NOT NULL,
            exclude_weekends      BOOLEAN NOT NULL,
            timezone              VARCHAR(50) NOT NULL,
            warning_triggered     BOOLEAN DEFAULT FALSE,
            critical_triggered    BOOLEAN DEFAULT FALSE,
            breach_triggered      BOOLEAN DEFAULT FALSE,
            created_at            TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_sla_metrics_org_status ON sla_metrics(organization_id, status)")
    op.execute("CREATE INDEX ix_sla_metrics_submitted ON sla_metrics(submitted_at)")

    # ── 6. performance_metrics ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE performance_metrics (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id      UUID NOT NULL REFERENCES organizations(id),
            employee_id          UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            punctuality_score    DOUBLE PRECISION DEFAULT 0,
            absence_rate         DOUBLE PRECISION DEFAULT 0,
            late_arrivals        INTEGER DEFAULT 0,
            kpi_score            DOUBLE PRECISION DEFAULT 0,
            project_completion   DOUBLE PRECISION DEFAULT 0,
            deadline_adherence   DOUBLE PRECISION DEFAULT 0,
            teamwork_rating      DOUBLE PRECISION DEFAULT 0,
            communication_score  DOUBLE PRECISION DEFAULT 0,
            conflict_incidents   INTEGER DEFAULT 0,
            recorded_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_performance_metrics_employee "
        "ON performance_metrics(employee_id, recorded_at)"
    )

    # ── 7. time_tracking_records ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE time_tracking_records (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id),
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            work_date        DATE NOT NULL,
            check_in_at      TIMESTAMPTZ,
            check_out_at     TIMESTAMPTZ,
            is_late          BOOLEAN DEFAULT FALSE,
            is_early_leave   BOOLEAN DEFAULT FALSE,
            status           time_tracking_status DEFAULT 'checked_out',
            CONSTRAINT uq_time_tracking_emp_date UNIQUE (employee_id, work_date)
        )
    """)

    # ── 8. employee_notes ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_notes (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id),
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            author_id        UUID NOT NULL REFERENCES employees(id),
            note_type        note_type DEFAULT 'general',
            sentiment        sentiment DEFAULT 'neutral',
            content          TEXT NOT NULL,
            created_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_employee_notes_employee_id ON employee_notes(employee_id)")

    # ── 9. supervisor_ratings ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE supervisor_ratings (
            id                     UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id        UUID NOT NULL REFERENCES organizations(id),
            employee_id            UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            supervisor_id          UUID NOT NULL REFERENCES employees(id),
            quality_of_work        INTEGER NOT NULL CHECK (quality_of_work BETWEEN 1 AND 5),
            efficiency             INTEGER NOT NULL CHECK (efficiency BETWEEN 1 AND 5),
            teamwork               INTEGER NOT NULL CHECK (teamwork BETWEEN 1 AND 5),
            initiative             INTEGER NOT NULL CHECK (initiative BETWEEN 1 AND 5),
            communication          INTEGER NOT NULL CHECK (communication BETWEEN 1 AND 5),
            reliability            INTEGER NOT NULL CHECK (reliability BETWEEN 1 AND 5),
            overall_rating         DOUBLE PRECISION NOT NULL,
            rating_period          VARCHAR(7) NOT NULL,
            strengths              TEXT,
            areas_for_improvement  TEXT,
            general_comments       TEXT,
            created_at             TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_supervisor_ratings_employee "
        "ON supervisor_ratings(employee_id, created_at)"
    )

    # ── 10. notifications ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id),
            recipient_id     UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            type             notification_type DEFAULT 'system',
            title            VARCHAR(200) NOT NULL,
            message          TEXT NOT NULL,
            related_id       UUID,
            is_read          BOOLEAN DEFAULT FALSE,
            read_at          TIMESTAMPTZ,
            created_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_organization_id ON notifications(organization_id)"
    )
    op.execute(
        "CREATE INDEX ix_notifications_recipient_unread "
        "ON notifications(recipient_id, is_read)"
    )

    # ── 11. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id),
            actor_id         UUID REFERENCES employees(id) ON DELETE SET NULL,
            action           VARCHAR(50) NOT NULL,
            entity_type      VARCHAR(50) NOT NULL,
            entity_id        UUID NOT NULL,
            old_values       JSON,
            new_values       JSON,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_org ON audit_trail(organization_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "supervisor_ratings",
        "employee_notes",
        "time_tracking_records",
        "performance_metrics",
        "sla_metrics",
        "sla_configs",
        "leave_requests",
        "employees",
        "organizations",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _values in reversed(ENUM_TYPES):
        _drop_enum(name)
