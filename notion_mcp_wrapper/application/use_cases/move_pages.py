"""
Move Pages Use Case

Architectural Intent:
- Re-parents a batch of Notion pages from a page -> new parent mapping
- Moves run sequentially with a short pause to stay under Notion rate limits
- One failing page is recorded and does not stop the batch
"""

import asyncio
import logging
from typing import Mapping, Optional

from notion_mcp_wrapper.application.dtos.execution_dtos import MoveReport, PageMoveResult
from notion_mcp_wrapper.application.orchestration.wrapper_orchestrator import (
    WrapperOrchestrator,
)
from notion_mcp_wrapper.domain.value_objects.page_id import PageId

logger = logging.getLogger(__name__)


class MovePages:
    def __init__(self, orchestrator: WrapperOrchestrator, pause: float = 0.5):
        self.orchestrator = orchestrator
        self.pause = pause

    async def execute(
        self, mapping: Mapping[str, str], pause: Optional[float] = None
    ) -> MoveReport:
        delay = self.pause if pause is None else pause
        items = list(mapping.items())
        results: list[PageMoveResult] = []

        for index, (page, parent) in enumerate(items):
            results.append(await self._move_one(page, parent))
            if delay > 0 and index < len(items) - 1:
                await asyncio.sleep(delay)

        report = MoveReport(tuple(results))
        logger.info(
            "Moved %d/%d pages (%d via fallback)",
            report.succeeded,
            len(items),
            report.via_fallback,
        )
        return report

    async def _move_one(self, page: str, parent: str) -> PageMoveResult:
        try:
            page_id = PageId(page)
            parent_id = PageId(parent)
            result = await self.orchestrator.execute(
                "movePage",
                {"page_id": str(page_id), "parent": {"page_id": str(parent_id)}},
            )
        except Exception as e:
            logger.error("Failed to move %s -> %s: %s", page, parent, e)
            return PageMoveResult(page, parent, success=False, error=str(e))

        return PageMoveResult(page, parent, success=result.success, source=result.source)
