# scripts/setup/init_db.py
"""
Initialize database — creates all tables and the partial unique indexes.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from carpool.database import create_tables, engine
from carpool.config import settings
from sqlalchemy import inspect, text


def main():
    print("🗄️  Carpool DB Initialization")
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
        print("  docker run -d -p 5432:5432 -e POSTGRES_PASSWORD=postgres postgres:16")
        print("  # or point DATABASE_URL at sqlite:///./carpool_dev.db")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    print("✅ All tables created")

    inspector = inspect(engine)
    tables = sorted(inspector.get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    indexes = [ix["name"] for ix in inspector.get_indexes("reservations") if ix.get("unique")]
    print(f"\n🔒 Unique indexes on reservations: {', '.join(sorted(indexes)) or 'none'}")

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn carpool.main:app --host 0.0.0.0 --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
