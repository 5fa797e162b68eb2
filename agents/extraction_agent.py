# agents/extraction_agent.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from clients.pdf_corpus import CorpusDocument, CorpusReadError, PdfCorpusReader
from clients.semantic_oracle import OracleError, SemanticOracle
from services.persistence_service import ThematicRepository
from services.prompts import build_extraction_prompt
from services.schemas import INSERT_PAPER_TOOL, ExtractionRecord
from utils.sanitization import preview

logger = logging.getLogger(__name__)


@dataclass
class BatchStats:
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    stopped: bool = False

    @property
    def success_rate(self) -> float:
        if not self.processed:
            return 0.0
        return round(self.succeeded / self.processed * 100, 1)

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "stopped": self.stopped,
        }


class ExtractionAgent:
    """
    Sends each PDF to the oracle with the `insert_paper` tool and persists
    the structured result. One document at a time; a failure only costs
    that document.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        oracle: SemanticOracle,
        model: Optional[str] = None,
        delay: float = 4.0,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.repository = ThematicRepository(session_factory)
        self.oracle = oracle
        self.model = model
        self.delay = delay
        self.stop_event = stop_event or asyncio.Event()

    async def extract_document(self, document: CorpusDocument) -> bool:
        """Returns True when the paper was stored (or already present)."""
        # Reserved before the oracle answers; only consumed once a paper row is written
        reference_number = self.repository.next_reference_number()
        prompt = build_extraction_prompt(reference_number, document.text)

        logger.info(f"🤖 Sending {document.name} to the oracle (reference [{reference_number}])...")
        try:
            args = await asyncio.to_thread(
                self.oracle.invoke, prompt, INSERT_PAPER_TOOL, document, self.model
            )
        except OracleError as e:
            logger.error(f"❌ Oracle error for {document.name}: {e}")
            return False

        if args is None:
            logger.warning("⚠️ No function call found in response - paper may not be relevant")
            return False

        if args.get("reference_number") != reference_number:
            logger.warning(
                f"⚠️ Expected reference number {reference_number}, got {args.get('reference_number')}. "
                f"Using expected number."
            )
        args = {**args, "reference_number": reference_number}

        try:
            record = ExtractionRecord.model_validate(args)
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            logger.warning(f"⚠️ Paper missing required fields ({', '.join(fields)}): {document.name}")
            return False

        logger.info(f"💾 Saving '{preview(record.paper_title)}' by {preview(record.authors, 40)}")
        logger.info(f"   🗂️ Themes: {len(record.themes)} | 🏷️ Codes: {record.code_count()} | 📅 Year: {record.year or 'N/A'}")

        try:
            await asyncio.to_thread(self.repository.insert_paper, record)
        except Exception as e:
            logger.error(f"❌ Database insert error for {document.name}: {e}", exc_info=True)
            return False

        return True

    async def run(self, reader: PdfCorpusReader) -> BatchStats:
        stats = BatchStats()
        try:
            names = reader.list_documents()
        except CorpusReadError as e:
            logger.error(f"❌ {e}")
            return stats

        stats.total = len(names)
        for position, name in enumerate(names, start=1):
            if self.stop_event.is_set():
                logger.warning("⚠️ Stop requested - no further documents will be processed")
                stats.stopped = True
                break

            stats.processed += 1
            logger.info(f"📄 Processing file {position}/{stats.total}: {name}")

            try:
                document = await asyncio.to_thread(reader.read, name)
                ok = await self.extract_document(document)
            except CorpusReadError as e:
                logger.error(f"❌ {e}")
                ok = False
            except Exception as e:
                logger.error(f"❌ Unexpected error processing file {name}: {e}", exc_info=True)
                ok = False

            if ok:
                stats.succeeded += 1
            else:
                stats.failed += 1

            if position < stats.total:
                await asyncio.sleep(self.delay)

        logger.info("🎉 PROCESSING COMPLETE!")
        logger.info(f"   • Total files: {stats.total}")
        logger.info(f"   • Successfully processed: {stats.succeeded}")
        logger.info(f"   • Errors/Not relevant: {stats.failed}")
        logger.info(f"   • Success rate: {stats.success_rate}%")
        return stats
