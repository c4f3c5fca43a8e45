from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from app.infrastructure.config import DatabaseConfig
from app.infrastructure.db import make_engine_and_session
from app.infrastructure.models import Base
from app.utils.legacy import import_documents


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Import legacy template, assessment and customer documents"
    )

    backend_default = os.environ.get("DB_BACKEND", "sqlite")
    sqlite_default = os.environ.get("DB_SQLITE_PATH", "./credit_rating.db")
    mysql_host_default = os.environ.get("DB_MYSQL_HOST", "localhost")
    mysql_port_default = int(os.environ.get("DB_MYSQL_PORT") or 3306)
    mysql_user_default = os.environ.get("DB_MYSQL_USER", "root")
    mysql_password_default = os.environ.get("DB_MYSQL_PASSWORD", "")
    mysql_database_default = os.environ.get("DB_MYSQL_DATABASE", "credit_rating")

    parser.add_argument("--backend", choices=["sqlite", "mysql"], default=backend_default)
    parser.add_argument("--sqlite-path", default=sqlite_default)
    parser.add_argument("--mysql-host", default=mysql_host_default)
    parser.add_argument("--mysql-port", type=int, default=mysql_port_default)
    parser.add_argument("--mysql-user", default=mysql_user_default)
    parser.add_argument("--mysql-password", default=mysql_password_default)
    parser.add_argument("--mysql-database", "--mysql-db", dest="mysql_database", default=mysql_database_default)
    parser.add_argument(
        "documents",
        help="JSON file with 'templates', 'customerAssessments' and 'customers' lists",
    )
    parser.add_argument("--dry-run", action="store_true", help="Roll back instead of committing")
    args = parser.parse_args()

    documents_path = Path(args.documents)
    if not documents_path.exists():
        print(f"ERROR: document file not found at {documents_path}", file=sys.stderr)
        sys.exit(1)
    payload = json.loads(documents_path.read_text(encoding="utf-8"))

    cfg = DatabaseConfig(
        backend=args.backend,
        sqlite_path=args.sqlite_path,
        mysql_host=args.mysql_host,
        mysql_port=args.mysql_port,
        mysql_user=args.mysql_user,
        mysql_password=args.mysql_password,
        mysql_database=args.mysql_database,
    )
    engine, SessionLocal = make_engine_and_session(cfg.get_connection_url())
    Base.metadata.create_all(engine)

    with SessionLocal() as session:
        report = import_documents(session, payload)
        if args.dry_run:
            session.rollback()
        else:
            session.commit()

    print(
        f"Imported {report.templates} templates, {report.assessments} assessments, "
        f"{report.customers} customers ({len(report.skipped)} skipped)."
    )
    if args.dry_run:
        print("Dry run: nothing was committed.")


if __name__ == "__main__":
    main()
