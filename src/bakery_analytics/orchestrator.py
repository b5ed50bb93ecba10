"""Pipeline orchestration: per-client analysis and report assembly."""
import asyncio
import logging
from collections import Counter
from datetime import datetime

from pydantic import BaseModel

from .cache import FileCache
from .client import APIClient
from .config import Settings, Tuning
from .extractor import WEEKDAYS, OrderExtractor
from .metrics import compute_metrics
from .models import (
    AnalysisResult, ClientMetrics, ClientProfile, ClientReport, ConversationTag,
    Message, Order, ProductStat, TrendPoint,
)
from .parser import group_conversations, parse_transcript
from .profiler import FallbackProfiler, ProfileSelector, RemoteEnrichment

logger = logging.getLogger(__name__)

MONTHS = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
    "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]
SEGMENTS = ["vip", "regular", "new", "at_risk"]
CHURN_LEVELS = ["high", "medium", "low"]
CATEGORIES = ["general", "specific", "mixed"]
EPOCH = datetime(1970, 1, 1)


class ClientAnalysis(BaseModel):
    """Independent result of one client task, merged after all tasks join."""
    metrics: ClientMetrics
    profile: ClientProfile
    orders: list[Order]
    product_counts: dict[str, int]
    tags: list[ConversationTag]


def popularity(count: int, tuning: Tuning) -> str:
    if count > tuning.very_high_popularity:
        return "very high"
    if count > tuning.high_popularity:
        return "high"
    if count > tuning.medium_popularity:
        return "medium"
    return "low"


def build_trends(messages: list[Message]) -> list[TrendPoint]:
    """Hourly, weekday and monthly activity, one count per message."""
    hourly = [0] * 24
    daily = [0] * 7
    monthly = [0] * 12
    for message in messages:
        hourly[message.timestamp.hour] += 1
        daily[message.timestamp.weekday()] += 1
        monthly[message.timestamp.month - 1] += 1

    return (
        [TrendPoint(kind="hour", period=f"{h:02d}:00", activity=n) for h, n in enumerate(hourly)]
        + [TrendPoint(kind="weekday", period=WEEKDAYS[d], activity=n) for d, n in enumerate(daily)]
        + [TrendPoint(kind="month", period=MONTHS[m], activity=n) for m, n in enumerate(monthly)]
    )


def build_products(results: list[ClientAnalysis], tuning: Tuning) -> list[ProductStat]:
    totals: Counter = Counter()
    buyers: Counter = Counter()
    for result in results:
        for product, count in result.product_counts.items():
            totals[product] += count
            if count > 0:
                buyers[product] += 1

    prices = {p.name: p.unit_price for p in tuning.products}
    stats = [
        ProductStat(
            product=product,
            total_count=count,
            popularity=popularity(count, tuning),
            estimated_revenue=count * prices.get(product, tuning.average_unit_price),
            client_count=buyers[product],
        )
        for product, count in totals.items()
    ]
    return sorted(stats, key=lambda s: (-s.total_count, s.product))


def assemble_report(
    messages: list[Message],
    results: list[ClientAnalysis],
    reference_time: datetime,
    tuning: Tuning | None = None,
) -> AnalysisResult:
    """Merge independent client results into the global report."""
    tuning = tuning or Tuning()
    metrics = [r.metrics for r in results]

    samples = sum(m.response_samples for m in metrics)
    weighted = sum(m.response_time_hours * m.response_samples for m in metrics)

    segments = Counter(m.segment for m in metrics)
    churn = Counter(m.churn_risk for m in metrics)
    orders = sorted((o for r in results for o in r.orders), key=lambda o: o.date)
    categories = Counter(o.category for o in orders)
    packaged = [o for o in orders if o.package_format]
    clients = sorted(
        (ClientReport(metrics=r.metrics, profile=r.profile) for r in results),
        key=lambda c: -c.metrics.total_spent,
    )

    return AnalysisResult(
        total_clients=len(results),
        total_orders=sum(m.total_orders for m in metrics),
        total_pieces=sum(m.total_pieces for m in metrics),
        total_revenue=sum(m.total_spent for m in metrics),
        avg_response_time_hours=weighted / samples if samples else 0.0,
        total_changes=sum(m.total_changes for m in metrics),
        clients=clients,
        products=build_products(results, tuning),
        trends=build_trends(messages),
        orders=orders,
        segment_stats={s: segments.get(s, 0) for s in SEGMENTS},
        churn_risk_stats={c: churn.get(c, 0) for c in CHURN_LEVELS},
        order_category_stats={c: categories.get(c, 0) for c in CATEGORIES},
        exclusion_stats={
            "clients_with_exclusions": sum(1 for m in metrics if m.exclusions),
            "total_exclusions": sum(len(m.exclusions) for m in metrics),
        },
        package_order_stats={
            "total_package_orders": len(packaged),
            "total_package_pieces": sum(o.total_pieces for o in packaged),
        },
        conversation_tags=sorted((t for r in results for t in r.tags), key=lambda t: t.timestamp),
        reference_time=reference_time,
    )


class Analyzer:
    """Runs the whole batch: tokenize, group, analyze clients concurrently, assemble."""

    def __init__(self, settings: Settings | None = None, profiler: ProfileSelector | None = None):
        self.settings = settings or Settings()
        self.tuning = self.settings.tuning
        self.extractor = OrderExtractor(self.tuning)
        self.profiler = profiler or self._default_profiler()

    def _default_profiler(self) -> ProfileSelector:
        remote = None
        if self.settings.enrichment_enabled:
            api = APIClient(
                self.settings.api_key,
                model=self.settings.model,
                max_retries=self.settings.max_retries,
                timeout=self.settings.timeout,
            )
            cache = FileCache(self.settings.data_dir / "profiles", ClientProfile)
            remote = RemoteEnrichment(api, cache, self.settings.max_concurrent)
        else:
            logger.info("No API key configured, using deterministic profiles only")
        return ProfileSelector(FallbackProfiler(self.tuning), remote)

    async def analyze_client(
        self,
        client: str,
        conversation: list[Message],
        reference_time: datetime,
    ) -> ClientAnalysis:
        extraction = self.extractor.extract(client, conversation)
        metrics = compute_metrics(extraction, reference_time, self.tuning)
        recent_messages = [m.content for m in conversation if m.is_client]
        profile = await self.profiler.profile(metrics, recent_messages, extraction.orders)
        return ClientAnalysis(
            metrics=metrics,
            profile=profile,
            orders=extraction.orders,
            product_counts=extraction.product_counts,
            tags=extraction.tags,
        )

    async def analyze(self, text: str, reference_time: datetime | None = None) -> AnalysisResult:
        """Analyze one transcript batch.

        Without an explicit `reference_time`, the last message timestamp is
        used so that results depend on the input text only.
        """
        if not isinstance(text, str):
            raise TypeError(f"transcript must be a string, got {type(text).__name__}")

        messages = parse_transcript(text, self.tuning.bakery_name)
        if reference_time is None:
            reference_time = messages[-1].timestamp if messages else EPOCH
        conversations = group_conversations(messages)
        logger.info("Parsed %d messages from %d clients", len(messages), len(conversations))

        results = await asyncio.gather(*[
            self.analyze_client(client, conversation, reference_time)
            for client, conversation in conversations.items()
        ])
        return assemble_report(messages, list(results), reference_time, self.tuning)


def analyze_transcript(
    text: str,
    settings: Settings | None = None,
    reference_time: datetime | None = None,
) -> AnalysisResult:
    """Synchronous entry point for a single batch."""
    return asyncio.run(Analyzer(settings).analyze(text, reference_time))
