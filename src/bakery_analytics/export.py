"""Tabular export of analysis results."""
from pathlib import Path

import pandas as pd

from .models import AnalysisResult


def clients_frame(result: AnalysisResult) -> pd.DataFrame:
    rows = []
    for client in result.clients:
        m, p = client.metrics, client.profile
        rows.append({
            "client": m.name,
            "total_orders": m.total_orders,
            "total_pieces": m.total_pieces,
            "total_spent": m.total_spent,
            "avg_order_value": round(m.avg_order_value, 2),
            "avg_pieces_per_order": round(m.avg_pieces_per_order, 2),
            "messages_per_order": round(m.messages_per_order, 2),
            "response_time_hours": round(m.response_time_hours, 2),
            "order_frequency": round(m.order_frequency, 2),
            "complaints": m.complaints,
            "compliments": m.compliments,
            "satisfaction_score": m.satisfaction_score,
            "payment_issues": m.payment_issues,
            "general_orders": m.general_orders,
            "specific_orders": m.specific_orders,
            "total_changes": m.total_changes,
            "difficulty_score": m.difficulty_score,
            "segment": m.segment,
            "churn_risk": m.churn_risk,
            "last_order_date": m.last_order_date.isoformat(),
            "preferred_products": ", ".join(
                f"{pp.product} ({pp.percentage}%)" for pp in m.preferred_products
            ),
            "patterns": ", ".join(m.order_patterns),
            "destinations": ", ".join(d.destination for d in m.sub_destinations),
            "risk_level": p.risk_level,
            "business_value": p.business_value,
            "insights": " | ".join(p.insights),
            "recommendations": " | ".join(p.recommendations),
            "profile_source": p.source,
        })
    return pd.DataFrame(rows)


def orders_frame(result: AnalysisResult) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "date": o.date.isoformat(),
            "client": o.client,
            "products": ", ".join(f"{m.count} {m.product}" for m in o.products),
            "total_pieces": o.total_pieces,
            "order_type": o.order_type,
            "category": o.category,
            "assorted_pieces": o.assorted_pieces,
            "package_format": o.package_format or "",
            "changes": o.changes,
            "destination": o.destination or "",
            "estimated_value": o.estimated_value,
            "response_time_hours": round(o.response_time_hours, 2),
            "day_of_week": o.day_of_week,
            "hour": o.hour,
        }
        for o in result.orders
    ])


def export_csv(result: AnalysisResult, out_dir: Path) -> list[Path]:
    """Write clients, products, orders and trends CSVs; return the paths written."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    frames = {
        "clients": clients_frame(result),
        "products": pd.DataFrame([p.model_dump() for p in result.products]),
        "orders": orders_frame(result),
        "trends": pd.DataFrame([t.model_dump() for t in result.trends]),
    }
    paths = []
    for name, frame in frames.items():
        path = out_dir / f"{name}.csv"
        frame.to_csv(path, index=False, encoding="utf-8")
        paths.append(path)
    return paths
