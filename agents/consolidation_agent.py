# agents/consolidation_agent.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from clients.semantic_oracle import SemanticOracle
from database.models.thematic_models import Subtheme, Theme
from services import merge_service
from services.persistence_service import ThematicRepository
from services.prompts import build_consolidation_prompt
from services.schemas import CONSOLIDATE_SUBTHEMES_TOOL, CONSOLIDATE_THEMES_TOOL, MergeGroup

logger = logging.getLogger(__name__)


@dataclass
class EntityKind:
    name: str
    model: type
    tool: dict
    merge: Callable
    chunk_size: int


@dataclass
class ConsolidationSummary:
    kind: str
    before: int = 0
    after: int = 0
    passes: int = 0
    merged: int = 0
    failed_groups: int = 0
    failed_chunks: int = 0
    stopped: bool = False

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "before": self.before,
            "after": self.after,
            "passes": self.passes,
            "merged": self.merged,
            "failed_groups": self.failed_groups,
            "failed_chunks": self.failed_chunks,
            "stopped": self.stopped,
        }


def chunked(items: List, size: int) -> List[List]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class ConsolidationAgent:
    """
    Shrinks the theme set, then the subtheme set, by asking the oracle for
    merge groups chunk by chunk and applying each group as one transaction.
    A kind is done when a full pass applies zero merges (or <= 1 entity is left).
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        oracle: SemanticOracle,
        model: Optional[str] = None,
        theme_chunk_size: int = 30,
        subtheme_chunk_size: int = 40,
        chunk_delay: float = 3.0,
        pass_delay: float = 2.0,
        max_passes: Optional[int] = None,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.session_factory = session_factory
        self.repository = ThematicRepository(session_factory)
        self.oracle = oracle
        self.model = model
        self.chunk_delay = chunk_delay
        self.pass_delay = pass_delay
        self.max_passes = max_passes
        self.stop_event = stop_event or asyncio.Event()

        self.kinds = {
            "theme": EntityKind("theme", Theme, CONSOLIDATE_THEMES_TOOL, merge_service.merge_themes, theme_chunk_size),
            "subtheme": EntityKind("subtheme", Subtheme, CONSOLIDATE_SUBTHEMES_TOOL, merge_service.merge_subthemes, subtheme_chunk_size),
        }

    def _stopping(self) -> bool:
        return self.stop_event.is_set()

    # ------------------------------------------------------------
    # PROPOSE
    # ------------------------------------------------------------
    async def _propose(self, kind: EntityKind, chunk: List[Dict], iteration: int, chunk_number: Optional[int]) -> List[MergeGroup]:
        prompt = build_consolidation_prompt(kind.name, chunk, iteration, chunk_number)
        args = await asyncio.to_thread(self.oracle.invoke, prompt, kind.tool, None, self.model)
        if args is None:
            logger.info(f"📝 No function call found for {kind.name}s in this chunk")
            return []

        groups = []
        for raw in args.get("consolidation_groups") or []:
            try:
                groups.append(MergeGroup.from_tool_args(kind.name, raw))
            except (ValidationError, AttributeError) as e:
                logger.warning(f"Ignoring malformed {kind.name} group {raw!r}: {e}")
        return groups

    # ------------------------------------------------------------
    # APPLY
    # ------------------------------------------------------------
    async def _apply(self, kind: EntityKind, groups: List[MergeGroup], summary: ConsolidationSummary) -> int:
        merged = 0
        for group in groups:
            if not group.merge_ids():
                continue

            names = ", ".join(ref.name or str(ref.id) for ref in group.to_merge if ref.id != group.primary.id)
            logger.info(f"🔄 Merging {kind.name}s into \"{group.primary.name}\": {names}")
            logger.info(f"📝 Justification: {group.justification}")

            try:
                merged += await asyncio.to_thread(kind.merge, self.session_factory, group)
            except Exception as e:
                summary.failed_groups += 1
                logger.error(f"❌ Error merging {kind.name}s for group \"{group.primary.name}\": {e}")
        return merged

    # ------------------------------------------------------------
    # FIXPOINT LOOP
    # ------------------------------------------------------------
    async def consolidate(self, kind_name: str) -> ConsolidationSummary:
        kind = self.kinds[kind_name]
        before = await asyncio.to_thread(self.repository.count, kind.model)
        summary = ConsolidationSummary(kind=kind.name, before=before)
        iteration = 1

        while True:
            if self._stopping():
                summary.stopped = True
                break
            if self.max_passes is not None and iteration > self.max_passes:
                logger.info(f"Reached max passes ({self.max_passes}) for {kind.name}s")
                break

            logger.info(f"🔄 {kind.name.upper()} CONSOLIDATION - ITERATION {iteration}")
            entities = await asyncio.to_thread(self.repository.load_entities, kind.model)
            if len(entities) <= 1:
                logger.info(f"📝 Only one or no {kind.name}s remaining. Consolidation complete.")
                break

            logger.info(f"📊 Current {kind.name}s: {len(entities)}")
            chunks = chunked(entities, kind.chunk_size)
            total_chunks = len(chunks)
            iteration_merges = 0
            summary.passes += 1

            for index, chunk in enumerate(chunks, start=1):
                if self._stopping():
                    summary.stopped = True
                    break

                if total_chunks > 1:
                    logger.info(f"📦 Processing {kind.name} chunk {index}/{total_chunks} ({len(chunk)} {kind.name}s)...")

                try:
                    groups = await self._propose(kind, chunk, iteration, index if total_chunks > 1 else None)
                    if groups:
                        merged = await self._apply(kind, groups, summary)
                        iteration_merges += merged
                        logger.info(f"✅ Merged {merged} {kind.name}s in this chunk")
                    else:
                        logger.info(f"📝 No {kind.name} consolidation groups identified in this chunk")
                except Exception as e:
                    summary.failed_chunks += 1
                    logger.error(f"❌ Error processing {kind.name} chunk {index}: {e}")

                if index < total_chunks:
                    await asyncio.sleep(self.chunk_delay)

            summary.merged += iteration_merges
            if summary.stopped:
                break
            if iteration_merges == 0:
                logger.info(f"🎯 No more {kind.name} consolidations possible.")
                break

            logger.info(f"📊 Iteration {iteration} complete: {iteration_merges} {kind.name}s merged")
            iteration += 1
            await asyncio.sleep(self.pass_delay)

        summary.after = await asyncio.to_thread(self.repository.count, kind.model)
        return summary

    async def run(self) -> Dict[str, ConsolidationSummary]:
        """Themes to fixpoint first, then subthemes."""
        results = {}
        for kind_name in ("theme", "subtheme"):
            if self._stopping():
                break
            logger.info(f"🎯 Starting recursive {kind_name} consolidation...")
            results[kind_name] = await self.consolidate(kind_name)

        for summary in results.values():
            logger.info(
                f"   • {summary.kind.capitalize()}s: {summary.before} → {summary.after} "
                f"(reduced by {summary.before - summary.after})"
            )
        return results
