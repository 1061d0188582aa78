"""Database schema management."""

from __future__ import annotations

from agency_portal.repositories.db_pool import ThreadLocalConnection


def initialize_schema(pool: ThreadLocalConnection) -> None:
    """Create required tables and indexes if they do not exist."""
    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            role_code TEXT NOT NULL,
            last_submission_at TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS user_hierarchy (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            report_to_id INTEGER NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            assigned_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES profiles(id) ON DELETE CASCADE,
            FOREIGN KEY (report_to_id) REFERENCES profiles(id) ON DELETE CASCADE
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS policies (
            policy_id INTEGER PRIMARY KEY AUTOINCREMENT,
            policy_name TEXT NOT NULL,
            policy_type TEXT NOT NULL UNIQUE,
            form_type TEXT,
            request_type TEXT,
            agency TEXT,
            requirements TEXT NOT NULL DEFAULT '[]',
            active_status INTEGER NOT NULL DEFAULT 1
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS serial_numbers (
            serial_id INTEGER PRIMARY KEY AUTOINCREMENT,
            serial_number TEXT NOT NULL UNIQUE,
            serial_type TEXT NOT NULL,
            is_issued INTEGER NOT NULL DEFAULT 0,
            date TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS submissions (
            sub_id INTEGER PRIMARY KEY AUTOINCREMENT,
            profile_id INTEGER,
            policy_id INTEGER NOT NULL,
            serial_id INTEGER UNIQUE,
            client_name TEXT NOT NULL,
            client_email_encrypted BLOB,
            client_email_hash TEXT,
            premium_paid TEXT NOT NULL,
            anp TEXT NOT NULL,
            mode_of_payment TEXT NOT NULL,
            submission_type TEXT,
            status TEXT NOT NULL DEFAULT 'Pending',
            issued_at TEXT NOT NULL,
            date_issued TEXT,
            policy_date TEXT,
            next_payment_date TEXT,
            form_type TEXT,
            attachments TEXT NOT NULL DEFAULT '[]',
            FOREIGN KEY (profile_id) REFERENCES profiles(id) ON DELETE SET NULL,
            FOREIGN KEY (policy_id) REFERENCES policies(policy_id) ON DELETE RESTRICT,
            FOREIGN KEY (serial_id) REFERENCES serial_numbers(serial_id) ON DELETE RESTRICT
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS payment_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sub_id INTEGER NOT NULL,
            amount TEXT NOT NULL,
            period_covered TEXT,
            payment_date TEXT NOT NULL,
            FOREIGN KEY (sub_id) REFERENCES submissions(sub_id) ON DELETE CASCADE
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            action TEXT NOT NULL,
            entity TEXT NOT NULL,
            entity_id INTEGER,
            detail TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute("CREATE INDEX IF NOT EXISTS idx_hierarchy_report_to ON user_hierarchy(report_to_id)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_hierarchy_user ON user_hierarchy(user_id)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_serials_type ON serial_numbers(serial_type, is_issued)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_submissions_profile ON submissions(profile_id)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_submissions_issued_at ON submissions(issued_at)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_submissions_email ON submissions(client_email_hash)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_payment_history_sub ON payment_history(sub_id)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_audit_logs_created_at ON audit_logs(created_at)")
