import sys
import os

# Add the project root to the python path so we can import from database
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from database.db import Base, build_engine, recreate_schema
import database.models.thematic_models  # noqa: F401
from services.settings import load_settings


def reset_database():
    """
    Drops and recreates every thematic analysis table. All data is lost.
    """
    settings = load_settings()

    print("WARNING: This will DROP and recreate the following tables:")
    for t in Base.metadata.tables:
        print(f" - {t}")

    confirm = input("Are you sure you want to proceed? (yes/no): ")
    if confirm.lower() != "yes":
        print("Operation cancelled.")
        return 1

    engine = build_engine(settings.database_url)
    try:
        recreate_schema(engine)
        print("Successfully reset all tables.")
        return 0
    except Exception as e:
        print(f"Error resetting database: {e}")
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(reset_database())
