import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from dataclasses import replace

# Add the project root to the python path so we can import from workflow
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from services.settings import load_settings
from workflow import ALL_STAGES, STAGE_EXTRACT, pipeline_context, run_pipeline

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger("run_pipeline")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Extract themes from research PDFs, consolidate them, and print the final report."
    )
    parser.add_argument(
        "--stages",
        nargs="+",
        choices=ALL_STAGES,
        default=list(ALL_STAGES),
        help="Stages to run, always executed in extract -> consolidate -> report order",
    )
    parser.add_argument("--papers-dir", help="Directory holding the PDF corpus (overrides PAPERS_DIR)")
    parser.add_argument(
        "--no-reset",
        dest="reset",
        action="store_false",
        help="Keep existing tables instead of dropping and recreating them before extraction",
    )
    parser.add_argument("--yes", action="store_true", help="Do not ask before the destructive reset")
    return parser.parse_args(argv)


def confirm_reset() -> bool:
    print("WARNING: extraction starts by DROPPING and recreating every thematic analysis table.")
    answer = input("Are you sure you want to proceed? (yes/no): ")
    return answer.strip().lower() == "yes"


async def _main(args) -> int:
    settings = load_settings()
    if args.papers_dir:
        settings = replace(settings, papers_dir=args.papers_dir)

    with pipeline_context(settings) as ctx:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, ctx.stop_event.set)
            except NotImplementedError:
                pass  # Windows

        results = await run_pipeline(ctx, stages=args.stages, reset=args.reset)

    report = results.pop("report", None)
    print(json.dumps(results, indent=2))
    if report:
        print(report)
    if ctx.stop_event.is_set():
        print("⚠️ Pipeline interrupted by user. Current progress is saved in the database.")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    if STAGE_EXTRACT in args.stages and args.reset and not args.yes and not confirm_reset():
        print("Operation cancelled.")
        return 1

    try:
        return asyncio.run(_main(args))
    except Exception as e:
        logger.error(f"❌ Fatal Error: {e}", exc_info=True)
        print("\n🛠️ Troubleshooting tips:")
        print("   • Check DATABASE_URL / POSTGRES_* settings")
        print("   • Verify the API key for the configured LLM_PROVIDER")
        print("   • Ensure PDF files are accessible in the papers directory")
        return 1


if __name__ == "__main__":
    sys.exit(main())
