import argparse
import json
import logging
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from database.db import build_engine, build_session_factory
from services.reporting_service import ReportingService
from services.settings import load_settings

logging.basicConfig(level=logging.INFO)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Print the thematic analysis stored in the database.")
    parser.add_argument("--coverage", action="store_true", help="Show papers-per-subtheme diagnostics instead")
    parser.add_argument("--themes", type=int, default=10, help="Number of themes to print")
    args = parser.parse_args(argv)

    engine = build_engine(load_settings().database_url)
    try:
        reporting = ReportingService(build_session_factory(engine))
        if args.coverage:
            print(json.dumps(reporting.subtheme_coverage(), indent=2))
        else:
            print(reporting.render_text_report(theme_limit=args.themes))
        return 0
    except Exception as e:
        print(f"Error: {e}")
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
