"""
Initialize database — creates all tables and seeds the fee schedule.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import create_tables, engine, SessionLocal
from app.config import settings
from app.models.manage_fee import ManageFee
from sqlalchemy import text, inspect


def seed_fees():
    """Insert any fee type missing from manage_fees with its default amount."""
    db = SessionLocal()
    try:
        existing = {row.fee_type for row in db.query(ManageFee).all()}
        added = 0
        for fee_type, amount in settings.DEFAULT_FEES.items():
            if fee_type not in existing:
                db.add(ManageFee(fee_type=fee_type, amount=amount))
                added += 1
        db.commit()
        return added
    finally:
        db.close()


def main():
    print("🗄️  Rental DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        print("  # or: sudo systemctl start postgresql")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    create_tables()
    print("✅ All tables created")

    added = seed_fees()
    print(f"💰 Fee schedule seeded ({added} new fee type(s))")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn app.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()
