# File: workflow.py
import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from agents.consolidation_agent import ConsolidationAgent
from agents.extraction_agent import ExtractionAgent
from clients.pdf_corpus import PdfCorpusReader
from clients.semantic_oracle import SemanticOracle
from database.db import build_engine, build_session_factory, init_db, ping, recreate_schema
from services.reporting_service import ReportingService
from services.settings import Settings

logger = logging.getLogger(__name__)

STAGE_EXTRACT = "extract"
STAGE_CONSOLIDATE = "consolidate"
STAGE_REPORT = "report"
ALL_STAGES = (STAGE_EXTRACT, STAGE_CONSOLIDATE, STAGE_REPORT)


@dataclass
class PipelineContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    oracle: SemanticOracle
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)


@contextmanager
def pipeline_context(settings: Settings, oracle: Optional[SemanticOracle] = None) -> Iterator[PipelineContext]:
    """
    Acquire the store and the oracle once for the whole run and release them
    on every exit path. Connection or credential problems raise here.
    """
    engine = build_engine(settings.database_url)
    try:
        ping(engine)
        logger.info("✅ Connected to the database successfully!")
        if oracle is None:
            oracle = SemanticOracle.from_provider(settings.llm_provider)
        try:
            yield PipelineContext(
                settings=settings,
                engine=engine,
                session_factory=build_session_factory(engine),
                oracle=oracle,
            )
        finally:
            oracle.close()
    finally:
        engine.dispose()
        logger.info("🔌 Database connection closed.")


async def run_extraction(ctx: PipelineContext, reset: bool = True) -> Dict:
    if reset:
        recreate_schema(ctx.engine)
    else:
        init_db(ctx.engine)

    agent = ExtractionAgent(
        ctx.session_factory,
        ctx.oracle,
        model=ctx.settings.extraction_model,
        delay=ctx.settings.extraction_delay,
        stop_event=ctx.stop_event,
    )
    stats = await agent.run(PdfCorpusReader(ctx.settings.papers_dir))
    return stats.to_dict()


async def run_consolidation(ctx: PipelineContext) -> Dict:
    init_db(ctx.engine)
    agent = ConsolidationAgent(
        ctx.session_factory,
        ctx.oracle,
        model=ctx.settings.consolidation_model,
        theme_chunk_size=ctx.settings.theme_chunk_size,
        subtheme_chunk_size=ctx.settings.subtheme_chunk_size,
        chunk_delay=ctx.settings.chunk_delay,
        pass_delay=ctx.settings.pass_delay,
        max_passes=ctx.settings.max_consolidation_passes,
        stop_event=ctx.stop_event,
    )
    summaries = await agent.run()
    return {kind: summary.to_dict() for kind, summary in summaries.items()}


def run_report(ctx: PipelineContext) -> str:
    return ReportingService(ctx.session_factory).render_text_report()


async def run_pipeline(ctx: PipelineContext, stages: Sequence[str] = ALL_STAGES, reset: bool = True) -> Dict:
    """
    Run the selected stages in order. Each stage reads what the previous
    one committed; a stop request skips the remaining stages.
    """
    unknown = [s for s in stages if s not in ALL_STAGES]
    if unknown:
        raise ValueError(f"Unknown pipeline stage(s): {', '.join(unknown)}")

    started = time.monotonic()
    results: Dict = {}

    for stage in ALL_STAGES:
        if stage not in stages:
            continue
        if ctx.stop_event.is_set():
            logger.warning(f"⚠️ Pipeline interrupted - skipping {stage}. Progress so far is saved in the database.")
            break

        logger.info(f"🚀 STAGE: {stage}")
        if stage == STAGE_EXTRACT:
            results[stage] = await run_extraction(ctx, reset=reset)
        elif stage == STAGE_CONSOLIDATE:
            results[stage] = await run_consolidation(ctx)
        elif stage == STAGE_REPORT:
            results[stage] = run_report(ctx)

    results["duration_seconds"] = round(time.monotonic() - started, 1)
    logger.info(f"⏱️ Total execution time: {results['duration_seconds']} seconds")
    return results
