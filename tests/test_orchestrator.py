import asyncio
from datetime import datetime

import pytest

from bakery_analytics.cache import FileCache
from bakery_analytics.config import Settings, Tuning
from bakery_analytics.models import ClientProfile
from bakery_analytics.orchestrator import Analyzer, analyze_transcript, popularity
from bakery_analytics.profiler import FallbackProfiler, ProfileSelector, RemoteEnrichment


@pytest.fixture
def result(sample_transcript):
    return analyze_transcript(sample_transcript, Settings())


def test_single_order_example():
    result = analyze_transcript("[10:19 AM, 3/7/2025] Cliente: 2 pastelitos 1 donas", Settings())
    assert result.total_clients == 1
    assert result.total_orders == 1
    assert result.total_pieces == 3
    assert result.total_revenue == 3500
    [order] = result.orders
    assert order.order_type == "small"
    assert order.day_of_week == "viernes"


def test_totals(result):
    assert result.total_clients == 2
    assert result.total_orders == 3
    assert result.total_pieces == 33
    assert result.total_revenue == 32500
    assert result.avg_response_time_hours == pytest.approx(1.0)
    assert result.reference_time == datetime(2025, 3, 10, 7, 20)


def test_totals_match_client_sums(result):
    metrics = [c.metrics for c in result.clients]
    assert result.total_orders == sum(m.total_orders for m in metrics) == len(result.orders)
    assert result.total_pieces == sum(m.total_pieces for m in metrics)
    assert result.total_revenue == sum(m.total_spent for m in metrics)
    assert sum(result.segment_stats.values()) == result.total_clients


def test_clients_sorted_by_spend(result):
    beto, lupita = (c.metrics for c in result.clients)
    assert beto.name == "Tienda Don Beto"
    assert beto.total_spent == 17000
    assert beto.no_response_days == 1
    assert beto.difficulty_score == 1
    assert lupita.name == "Abarrotes Lupita"
    assert lupita.total_spent == 15500
    assert lupita.total_pieces == 13
    assert lupita.compliments == 1
    assert lupita.response_samples == 1
    assert lupita.order_frequency == pytest.approx(2.01, abs=0.01)


def test_every_client_has_a_profile(result):
    for report in result.clients:
        assert report.profile.insights
        assert report.profile.recommendations
        assert report.profile.source == "fallback"
    assert result.clients[0].profile.risk_level == "low"


def test_products(result):
    summary = [(p.product, p.total_count, p.popularity) for p in result.products]
    assert summary == [
        ("surtidas", 20, "medium"),
        ("conchas blancas", 10, "low"),
        ("pastelitos", 2, "low"),
        ("donas", 1, "low"),
    ]
    assert result.products[0].estimated_revenue == 20 * 850
    assert all(p.client_count == 1 for p in result.products)


def test_trends_count_every_message(result):
    for kind in ("hour", "weekday", "month"):
        points = [t for t in result.trends if t.kind == kind]
        assert sum(t.activity for t in points) == 7
    weekdays = [t.period for t in result.trends if t.kind == "weekday"]
    assert weekdays[0] == "lunes"
    monday = next(t for t in result.trends if t.kind == "weekday" and t.period == "lunes")
    assert monday.activity == 7


def test_conversation_tags_in_time_order(result):
    assert [t.kind for t in result.conversation_tags] == ["order_inquiry", "delivery_info"]
    assert result.conversation_tags[0].client == "Abarrotes Lupita"


def test_segments(result):
    assert result.segment_stats == {"vip": 0, "regular": 0, "new": 2, "at_risk": 0}


def test_orders_sorted_by_date(result):
    dates = [o.date for o in result.orders]
    assert dates == sorted(dates)


def test_analysis_is_deterministic(sample_transcript):
    first = analyze_transcript(sample_transcript, Settings())
    second = analyze_transcript(sample_transcript, Settings())
    assert first.model_dump() == second.model_dump()


def test_explicit_reference_time(sample_transcript):
    result = analyze_transcript(sample_transcript, Settings(), reference_time=datetime(2025, 4, 1))
    beto = next(c.metrics for c in result.clients if c.metrics.name == "Tienda Don Beto")
    assert beto.days_since_last_order == 28
    assert beto.segment == "at_risk"


def test_empty_transcript():
    result = analyze_transcript("", Settings())
    assert result.total_clients == 0
    assert result.total_revenue == 0
    assert result.avg_response_time_hours == 0
    assert result.clients == []
    assert len(result.trends) == 24 + 7 + 12
    assert all(t.activity == 0 for t in result.trends)


def test_non_string_transcript_is_rejected():
    with pytest.raises(TypeError):
        asyncio.run(Analyzer(Settings()).analyze(b"bytes"))


def test_enrichment_is_used_for_each_client(sample_transcript, fake_api):
    api = fake_api()
    profiler = ProfileSelector(FallbackProfiler(), RemoteEnrichment(api, max_concurrent=1))
    result = asyncio.run(Analyzer(Settings(), profiler).analyze(sample_transcript))
    assert [c.profile.source for c in result.clients] == ["enrichment", "enrichment"]
    assert api.calls == 2


def test_popularity_buckets():
    tuning = Tuning()
    assert popularity(51, tuning) == "very high"
    assert popularity(21, tuning) == "high"
    assert popularity(11, tuning) == "medium"
    assert popularity(10, tuning) == "low"


def test_batch_statistics(result):
    assert result.churn_risk_stats == {"high": 0, "medium": 0, "low": 2}
    assert result.order_category_stats == {"general": 1, "specific": 2, "mixed": 0}
    assert result.exclusion_stats == {"clients_with_exclusions": 0, "total_exclusions": 0}
    assert result.package_order_stats == {"total_package_orders": 0, "total_package_pieces": 0}
    assert result.total_changes == 0


def test_package_and_exclusion_statistics():
    result = analyze_transcript(
        "[8:00 AM, 3/3/2025] Ana: 2 de 40 sin pasas\n"
        "[8:00 AM, 3/4/2025] Luis: 3 paquetes de 20, 1 cambio\n"
        "[8:00 AM, 3/5/2025] Luis: 20 piezas, que incluya 5 conchas\n",
        Settings(),
    )
    assert result.package_order_stats == {"total_package_orders": 2, "total_package_pieces": 140}
    assert result.exclusion_stats == {"clients_with_exclusions": 1, "total_exclusions": 1}
    assert result.order_category_stats == {"general": 2, "specific": 0, "mixed": 1}
    assert result.total_changes == 1


def test_corrupt_profile_cache_does_not_abort_the_batch(sample_transcript, fake_api, tmp_path):
    api = fake_api()
    profiler = ProfileSelector(FallbackProfiler(), RemoteEnrichment(api, FileCache(tmp_path, ClientProfile)))
    analyzer = Analyzer(Settings(), profiler)
    asyncio.run(analyzer.analyze(sample_transcript))
    for entry in tmp_path.glob("*.json"):
        entry.write_text("", encoding="utf-8")

    result = asyncio.run(analyzer.analyze(sample_transcript))
    assert [c.profile.source for c in result.clients] == ["enrichment", "enrichment"]
    assert api.calls == 4
