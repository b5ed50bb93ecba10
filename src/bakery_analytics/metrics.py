"""Per-client metric aggregation.

Everything here is a pure function of one client's extraction; no state is
shared between clients.
"""
import math
from datetime import datetime

from .config import Tuning
from .models import ClientMetrics, Extraction, Order, PreferredProduct, SubDestination


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def order_frequency(dates: list[datetime], total_orders: int) -> float:
    """Orders per week between the first and the last order."""
    if len(dates) < 2:
        return 0.0
    days = (max(dates) - min(dates)).total_seconds() / 86400
    return _ratio(total_orders, days) * 7


def preferred_products(counts: dict[str, int], limit: int = 5) -> list[PreferredProduct]:
    total = sum(counts.values())
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return [
        PreferredProduct(
            product=name,
            count=count,
            # half-up rounding
            percentage=math.floor(_ratio(count, total) * 100 + 0.5),
        )
        for name, count in ranked
    ]


def sub_destinations(orders: list[Order]) -> list[SubDestination]:
    """Orders and pieces per secondary destination, merged case-insensitively."""
    merged: dict[str, SubDestination] = {}
    for order in orders:
        if not order.destination:
            continue
        key = order.destination.lower()
        entry = merged.setdefault(key, SubDestination(destination=order.destination))
        entry.orders += 1
        entry.pieces += order.total_pieces
    return list(merged.values())


def difficulty_score(metrics: ClientMetrics, tuning: Tuning) -> int:
    """Weighted count of what makes a client costly to serve."""
    w = tuning.difficulty
    return (
        w.messages_per_order * (metrics.messages_per_order > 2)
        + w.slow_response * (metrics.response_time_hours > 4)
        + w.payment_issue * metrics.payment_issues
        + w.no_response * (metrics.no_response_days > 3)
        + w.low_frequency * (metrics.order_frequency < 1)
        + w.more_complaints * (metrics.complaints > metrics.compliments)
    )


def order_patterns(metrics: ClientMetrics, tuning: Tuning) -> list[str]:
    patterns = []
    if metrics.avg_pieces_per_order >= tuning.large_orders_avg_pieces:
        patterns.append("large orders")
    if metrics.order_frequency > tuning.frequent_orders_per_week:
        patterns.append("frequent client")
    if metrics.response_time_hours > tuning.slow_response_hours:
        patterns.append("slow response")
    if metrics.payment_issues > 0:
        patterns.append("payment problems")
    if metrics.no_response_days > tuning.inactive_no_days:
        patterns.append("days without order")
    if metrics.satisfaction_score > tuning.satisfied_score:
        patterns.append("satisfied client")
    if metrics.satisfaction_score < tuning.dissatisfied_score:
        patterns.append("dissatisfied client")
    if metrics.avg_order_value > tuning.high_value_avg_order:
        patterns.append("high value")
    if metrics.specific_orders > metrics.general_orders:
        patterns.append("prefers specific products")
    elif metrics.general_orders > metrics.specific_orders:
        patterns.append("prefers assorted")
    if metrics.total_changes > tuning.many_changes:
        patterns.append("many changes")
    if metrics.sub_destinations:
        patterns.append("multiple destinations")
    if metrics.exclusions:
        patterns.append("has exclusions")
    return patterns


def segment(metrics: ClientMetrics, tuning: Tuning) -> str:
    if metrics.order_frequency > tuning.vip_frequency and metrics.total_spent > tuning.vip_spent:
        return "vip"
    if metrics.days_since_last_order > tuning.at_risk_days or metrics.satisfaction_score < 0:
        return "at_risk"
    if metrics.total_orders < tuning.new_client_orders:
        return "new"
    return "regular"


def churn_risk(metrics: ClientMetrics, tuning: Tuning) -> str:
    score = 3 * metrics.payment_issues
    if metrics.days_since_last_order > tuning.churn_days:
        score += 3
    if metrics.difficulty_score > tuning.churn_difficulty:
        score += 2
    if metrics.satisfaction_score < 0:
        score += 2
    if score >= 5:
        return "high"
    if score >= 3:
        return "medium"
    return "low"


def compute_metrics(
    extraction: Extraction,
    reference_time: datetime,
    tuning: Tuning | None = None,
) -> ClientMetrics:
    """Fold a client's extraction into its full metric set.

    `reference_time` stands in for "now": it is the last order date of
    clients without orders and the origin of days-since-last-order.
    """
    tuning = tuning or Tuning()
    orders = extraction.orders
    total_orders = len(orders)
    total_pieces = sum(o.total_pieces for o in orders)
    total_spent = sum(o.estimated_value for o in orders)
    dates = [o.date for o in orders]
    last_order = max(dates) if dates else reference_time
    samples = extraction.response_samples
    general = [o for o in orders if o.category == "general"]
    specific = [o for o in orders if o.category != "general"]

    metrics = ClientMetrics(
        name=extraction.client,
        message_count=extraction.message_count,
        total_orders=total_orders,
        total_pieces=total_pieces,
        total_spent=total_spent,
        avg_order_value=_ratio(total_spent, total_orders),
        avg_pieces_per_order=_ratio(total_pieces, total_orders),
        messages_per_order=_ratio(extraction.message_count, total_orders),
        response_time_hours=_ratio(sum(samples), len(samples)),
        response_samples=len(samples),
        order_frequency=order_frequency(dates, total_orders),
        complaints=extraction.complaints,
        compliments=extraction.compliments,
        satisfaction_score=extraction.compliments - extraction.complaints,
        payment_issues=extraction.payment_issues,
        no_response_days=extraction.no_response_days,
        general_orders=len(general),
        specific_orders=len(specific),
        general_pieces=sum(o.total_pieces for o in general),
        specific_pieces=sum(o.total_pieces for o in specific),
        total_changes=extraction.changes,
        sub_destinations=sub_destinations(orders),
        preferred_products=preferred_products(
            extraction.product_counts, tuning.preferred_products_limit
        ),
        exclusions=extraction.exclusions,
        last_order_date=last_order,
        days_since_last_order=max(0, (reference_time - last_order).days),
    )
    metrics = metrics.model_copy(update={
        "difficulty_score": difficulty_score(metrics, tuning),
        "order_patterns": order_patterns(metrics, tuning),
    })
    return metrics.model_copy(update={
        "segment": segment(metrics, tuning),
        "churn_risk": churn_risk(metrics, tuning),
    })
