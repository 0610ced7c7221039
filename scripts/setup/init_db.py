"""
Initialize database: applies all pending schema migrations.
Run once before first launch, or after pulling new migrations.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import run_migrations, engine
from app.config import settings
from sqlalchemy import inspect, text


def main():
    print("🗄️  Parking Bot DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {engine.url.render_as_string(hide_password=True)}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print(f"\nCheck DATABASE_URL (currently {settings.DATABASE_URL.split('@')[-1]})")
        sys.exit(1)

    print("\n📋 Applying migrations...")
    applied = run_migrations(engine)
    if applied:
        print(f"✅ Applied migration(s): {', '.join(str(v) for v in applied)}")
    else:
        print("✅ Schema already up to date")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    print("\n🎉 Database ready! You can now start the bot:")
    print("   uvicorn app.main:app --host 0.0.0.0 --port 8080")


if __name__ == "__main__":
    main()
