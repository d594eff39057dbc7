"""Database schema for the portfolio API.

SQLite is the default store; Postgres is supported through the same DDL.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') and calendar dates are YYYY-MM-DD TEXT, so
both engines compare and sort them lexicographically in time order. Booleans are INTEGER
0/1 and list/object fields are JSON TEXT for the same portability reason.

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations (types + autoincrement).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

-- Users / Auth
-- JWTs are stateless, so only password hashes are stored.
CREATE TABLE IF NOT EXISTS users (
    user_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    phone TEXT,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('admin','user')),
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_login_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_users_role_active ON users (role, is_active);
CREATE INDEX IF NOT EXISTS idx_users_created ON users (created_at);

-- Contact form submissions
CREATE TABLE IF NOT EXISTS contacts (
    contact_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    subject TEXT NOT NULL,
    message TEXT NOT NULL,
    phone TEXT,
    status TEXT NOT NULL DEFAULT 'new'
        CHECK (status IN ('new','read','replied','archived')),
    priority TEXT NOT NULL DEFAULT 'medium'
        CHECK (priority IN ('low','medium','high')),
    admin_notes TEXT,
    ip_address TEXT,
    created_by INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (created_by) REFERENCES users(user_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_contacts_status_created ON contacts (status, created_at);
CREATE INDEX IF NOT EXISTS idx_contacts_email ON contacts (email);

-- Education / qualifications
CREATE TABLE IF NOT EXISTS education (
    education_id INTEGER PRIMARY KEY AUTOINCREMENT,
    institution TEXT NOT NULL,
    degree TEXT NOT NULL,
    field_of_study TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT,
    is_currently_studying INTEGER NOT NULL DEFAULT 0,
    grade TEXT,
    percentage REAL,
    cgpa REAL,
    description TEXT,
    achievements_json TEXT NOT NULL DEFAULT '[]',
    skills_json TEXT NOT NULL DEFAULT '[]',
    location_json TEXT NOT NULL DEFAULT '{}',
    type TEXT NOT NULL DEFAULT 'formal'
        CHECK (type IN ('formal','certification','course','workshop','seminar')),
    is_visible INTEGER NOT NULL DEFAULT 1,
    sort_order INTEGER NOT NULL DEFAULT 0,
    certificate_json TEXT NOT NULL DEFAULT '{}',
    created_by INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (is_currently_studying = 0 OR end_date IS NULL),
    FOREIGN KEY (created_by) REFERENCES users(user_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_education_visible_sort ON education (is_visible, sort_order, start_date);
CREATE INDEX IF NOT EXISTS idx_education_created_by ON education (created_by);

-- Portfolio projects
CREATE TABLE IF NOT EXISTS projects (
    project_id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    short_description TEXT,
    category TEXT NOT NULL DEFAULT 'other'
        CHECK (category IN ('web-development','mobile-app','data-science','ai-machine-learning','desktop-app','other')),
    technologies_json TEXT NOT NULL DEFAULT '[]',
    features_json TEXT NOT NULL DEFAULT '[]',
    links_json TEXT NOT NULL DEFAULT '{}',
    images_json TEXT NOT NULL DEFAULT '[]',
    start_date TEXT NOT NULL,
    end_date TEXT,
    is_ongoing INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'completed'
        CHECK (status IN ('planning','in-progress','completed','on-hold','cancelled')),
    difficulty TEXT NOT NULL DEFAULT 'intermediate'
        CHECK (difficulty IN ('beginner','intermediate','advanced','expert')),
    team_size INTEGER NOT NULL DEFAULT 1 CHECK (team_size BETWEEN 1 AND 50),
    role TEXT,
    challenges_json TEXT NOT NULL DEFAULT '[]',
    learnings_json TEXT NOT NULL DEFAULT '[]',
    tags_json TEXT NOT NULL DEFAULT '[]',
    is_visible INTEGER NOT NULL DEFAULT 1,
    is_featured INTEGER NOT NULL DEFAULT 0,
    sort_order INTEGER NOT NULL DEFAULT 0,
    views INTEGER NOT NULL DEFAULT 0,
    created_by INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (is_ongoing = 0 OR end_date IS NULL),
    FOREIGN KEY (created_by) REFERENCES users(user_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_projects_visible_featured ON projects (is_visible, is_featured, sort_order, created_at);
CREATE INDEX IF NOT EXISTS idx_projects_category_status ON projects (category, status);
CREATE INDEX IF NOT EXISTS idx_projects_created_by ON projects (created_by);

-- One like per (project, principal)
CREATE TABLE IF NOT EXISTS project_likes (
    project_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (project_id, user_id),
    FOREIGN KEY (project_id) REFERENCES projects(project_id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_project_likes_user ON project_likes (user_id);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # Remove SQLite pragmas
    lines: list[str] = []
    for line in ddl.splitlines():
        if line.strip().upper().startswith("PRAGMA "):
            continue
        lines.append(line)
    out = "\n".join(lines)

    # Types
    out = re.sub(r"\bREAL\b", "DOUBLE PRECISION", out)

    # AUTOINCREMENT primary keys
    out = re.sub(
        r"INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        "BIGSERIAL PRIMARY KEY",
        out,
        flags=re.IGNORECASE,
    )
    out = re.sub(r"\bAUTOINCREMENT\b", "", out, flags=re.IGNORECASE)

    return out


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE
