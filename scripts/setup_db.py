"""
scripts/setup_db.py — Initialize the database schema.

Run once before scoring the first submission:
    python scripts/setup_db.py
    python scripts/setup_db.py --tenant acme-college --config weights.json

Creates all tables defined in admission_leads/db/models.py directly via
SQLAlchemy metadata. With --tenant and --config, also stores that JSON weight
table as the tenant's scoring config.
"""

import sys
import os
import argparse
import logging

# Ensure the project root is on the path so we can import `admission_leads`
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import inspect, text

from admission_leads.config import settings
from admission_leads.db.models import Base
from admission_leads.db.repository import save_tenant_config
from admission_leads.db.session import engine, get_session
from admission_leads.scoring.weights import ConfigurationError, load_scoring_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("setup_db")


def setup_db(tenant_id: str | None = None, config_path: str | None = None) -> None:
    print("🔌 Connecting to database...")
    print(f"   URL: {settings.database_url[:40]}...")

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    print("✅ Connection successful.")

    print("\n📦 Creating tables if they don't exist...")
    Base.metadata.create_all(bind=engine)

    # Report which tables were found
    inspector = inspect(engine)
    tables = inspector.get_table_names()
    print(f"✅ Tables in database: {tables}")

    if tenant_id and config_path:
        print(f"\n⚖️  Storing scoring config for tenant {tenant_id!r}...")
        try:
            config = load_scoring_config(config_path)
        except ConfigurationError as e:
            logger.error("%s", e)
            sys.exit(1)
        with get_session() as db:
            save_tenant_config(db, tenant_id, config.to_dict())
        print("✅ Scoring config saved.")

    print("\n🎉 Database setup complete!")


def main():
    parser = argparse.ArgumentParser(description="Create tables and optionally seed a tenant config.")
    parser.add_argument("--tenant", help="Tenant to store --config for")
    parser.add_argument("--config", help="Path to a JSON scoring weight table")
    args = parser.parse_args()

    if bool(args.tenant) != bool(args.config):
        parser.error("--tenant and --config must be given together")

    setup_db(tenant_id=args.tenant, config_path=args.config)


if __name__ == "__main__":
    main()
