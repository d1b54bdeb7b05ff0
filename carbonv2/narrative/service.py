"""
CarbonV2 — Narrative Service
=============================
Wraps the engine's structured outputs with optional agent-written prose.

The client is injected once at construction and may be None (not
configured).  Structured facts are always computed first, so a
narrative failure can still hand them back through UpstreamError.partial.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from ..engine.errors import NarrativeUnavailableError, UpstreamError, ValidationError
from ..engine.facts import AnalyticsFacts, chat_snapshot
from ..engine.principal import Principal
from ..engine.service import CarbonEngine
from ..engine.suppliers import SupplierAggregate
from . import prompts
from .client import NarrativeClient, first_text

logger = logging.getLogger("carbonv2.narrative")


@dataclass
class AnalyticsInsights:
    facts: AnalyticsFacts
    narrative: str
    key_findings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    raw: Optional[dict] = None


@dataclass
class SupplierInsights:
    narrative: str
    suppliers: list[SupplierAggregate] = field(default_factory=list)
    raw: Optional[dict] = None


@dataclass
class ChatReply:
    message: str
    raw: Optional[dict] = None


@dataclass
class NarrativeReport:
    summary: dict[str, Any]
    narrative: str
    raw: Optional[dict] = None


class NarrativeService:
    """Agent-backed insights over the emission engine."""

    def __init__(self, engine: CarbonEngine, client: Optional[NarrativeClient]):
        self.engine = engine
        self.client = client

    @property
    def is_ready(self) -> bool:
        return self.client is not None

    async def close(self):
        if self.client is not None:
            await self.client.close()

    async def _ask(self, prompt: str, partial: Optional[dict] = None) -> dict:
        if self.client is None:
            raise NarrativeUnavailableError("narrative generation is not configured", partial)
        try:
            return await self.client.send_conversation(prompt)
        except UpstreamError as e:
            raise UpstreamError(e.message, partial) from None

    # ── Operations ───────────────────────────────────────────────────────

    async def generate_analytics(self, principal: Principal, tenant_id: int) -> AnalyticsInsights:
        facts = await self.engine.build_analytics_facts(principal, tenant_id)
        payload = facts.to_dict()

        raw = await self._ask(prompts.analytics_prompt(payload), partial={"facts": payload})
        logger.info("Analytics narrative generated for tenant %d", tenant_id)
        return AnalyticsInsights(
            facts=facts,
            narrative=first_text(raw),
            key_findings=facts.default_findings(),
            recommendations=facts.default_recommendations(),
            raw=raw,
        )

    async def generate_supplier_insights(self, principal: Principal, tenant_id: int) -> SupplierInsights:
        suppliers = await self.engine.group_suppliers(principal, tenant_id)
        payload = [s.to_dict() for s in suppliers]

        raw = await self._ask(prompts.suppliers_prompt(payload), partial={"suppliers": payload})
        return SupplierInsights(narrative=first_text(raw), suppliers=suppliers, raw=raw)

    async def chat_with_context(self, principal: Principal, tenant_id: int, prompt: str) -> ChatReply:
        if not prompt or not prompt.strip():
            raise ValidationError("prompt is required")

        window = self.engine.settings.CHAT_WINDOW
        facts = await self.engine.build_analytics_facts(principal, tenant_id, window=window)
        snapshot = chat_snapshot(facts)

        raw = await self._ask(prompts.chat_prompt(snapshot, prompt.strip()))
        return ChatReply(message=first_text(raw), raw=raw)

    async def generate_report(self, principal: Principal, tenant_id: int) -> NarrativeReport:
        summary = asdict(await self.engine.summarize_emissions(principal, tenant_id))

        raw = await self._ask(prompts.report_prompt(summary), partial={"summary": summary})
        logger.info("Report narrative generated for tenant %d", tenant_id)
        return NarrativeReport(summary=summary, narrative=first_text(raw), raw=raw)
