"""Bakery chat analysis pipeline - tokenize, analyze clients, assemble, export."""
import argparse
import asyncio
import logging
from datetime import datetime
from pathlib import Path

from .config import Settings
from .errors import AnalyticsError
from .export import export_csv
from .jobs import JobStore
from .loader import get_date_range, load_transcripts
from .models import AnalysisResult
from .orchestrator import Analyzer
from .parser import parse_transcript


def _report_to_markdown(result: AnalysisResult) -> str:
    """Convert an analysis result to markdown."""
    lines = [
        "# Reporte de clientes",
        f"**Referencia:** {result.reference_time:%Y-%m-%d %H:%M}\n",
        "## Totales",
        f"- **Clientes:** {result.total_clients}",
        f"- **Pedidos:** {result.total_orders}",
        f"- **Piezas:** {result.total_pieces}",
        f"- **Ingresos estimados:** ${result.total_revenue:,.0f}",
        f"- **Tiempo de respuesta promedio:** {result.avg_response_time_hours:.1f} h",
        "",
        "## Segmentos",
        *[f"- {name}: {count}" for name, count in result.segment_stats.items()],
        "",
        "## Riesgo de abandono",
        *[f"- {level}: {count}" for level, count in result.churn_risk_stats.items()],
        "",
        "## Categorías de pedido",
        *[f"- {name}: {count}" for name, count in result.order_category_stats.items()],
        f"- Pedidos por paquete: {result.package_order_stats.get('total_package_orders', 0)}",
        f"- Cambios solicitados: {result.total_changes}",
        "",
        "## Clientes",
    ]

    for client in result.clients:
        m, p = client.metrics, client.profile
        lines.extend([
            f"### {m.name}",
            f"- **Riesgo:** {p.risk_level} ({p.source})",
            f"- **Pedidos:** {m.total_orders} | **Piezas:** {m.total_pieces} | **Gastado:** ${m.total_spent:,.0f}",
            f"- **Frecuencia:** {m.order_frequency:.1f}/semana | **Dificultad:** {m.difficulty_score}",
            f"- **Valor:** {p.business_value}",
        ])
        if m.order_patterns:
            lines.append(f"- **Patrones:** {', '.join(m.order_patterns)}")
        lines.append("- **Insights:**")
        lines.extend(f"  - {i}" for i in p.insights)
        lines.append("- **Recomendaciones:**")
        lines.extend(f"  - {r}" for r in p.recommendations)
        lines.append("")

    if result.products:
        lines.append("## Productos")
        lines.extend(
            f"- {s.product}: {s.total_count} ({s.popularity})" for s in result.products
        )
        lines.append("")

    return "\n".join(lines)


async def _run_accumulative(
    text: str,
    analyzer: Analyzer,
    data_dir: Path,
    reference_time: datetime | None = None,
) -> AnalysisResult:
    """Queue the batch as an accumulative job and drain the queue up to it."""
    store = JobStore(data_dir)
    job_id = store.start(text, accumulative=True, reference_time=reference_time)
    while store.status(job_id).status == "pending":
        await store.process_next(analyzer)

    status = store.status(job_id)
    if status.status != "completed":
        raise AnalyticsError(f"Job {job_id} failed: {status.error}")
    return store.outputs.get(job_id)


async def run_pipeline(
    paths: list[Path],
    out_dir: Path,
    settings: Settings,
    reference_time: datetime | None = None,
    accumulative: bool = False,
) -> AnalysisResult:
    """Run the complete pipeline over the given transcript files."""
    print("=== Bakery Chat Analysis ===\n")

    print(f"Loading {len(paths)} transcript(s)...")
    text = load_transcripts(paths)
    messages = parse_transcript(text, settings.tuning.bakery_name)
    print(f"Loaded {len(messages)} messages")
    if messages:
        start, end = get_date_range(messages)
        print(f"Date range: {start} to {end}\n")
    else:
        print("No chat messages found\n")

    if settings.enrichment_enabled:
        print(f"Enrichment: {settings.model} (max {settings.max_concurrent} concurrent)\n")
    else:
        print("Enrichment: disabled, using rule-based profiles\n")

    analyzer = Analyzer(settings)
    if accumulative:
        print("Analyzing clients (all transcripts submitted so far)...")
        result = await _run_accumulative(text, analyzer, settings.data_dir, reference_time)
    else:
        print("Analyzing clients...")
        result = await analyzer.analyze(text, reference_time)
    print(f"✓ {result.total_clients} clients, {result.total_orders} orders\n")

    out_dir.mkdir(parents=True, exist_ok=True)
    result_file = out_dir / "result.json"
    result_file.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    print(f"✓ Saved {result_file}")

    for path in export_csv(result, out_dir):
        print(f"✓ Saved {path}")

    md_file = out_dir / "report.md"
    md_file.write_text(_report_to_markdown(result), encoding="utf-8")
    print(f"✓ Saved {md_file}\n")

    print("=" * 60)
    print(f"Revenue: ${result.total_revenue:,.0f} | Pieces: {result.total_pieces}")
    for client in result.clients[:5]:
        m = client.metrics
        print(f"  [{client.profile.risk_level.upper()}] {m.name}: ${m.total_spent:,.0f}")
    print("=" * 60)
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze exported bakery chat transcripts")
    parser.add_argument("transcripts", nargs="+", type=Path)
    parser.add_argument(
        "--accumulative", action="store_true",
        help="Analyze these transcripts together with every batch submitted before",
    )
    parser.add_argument("--out", type=Path, default=None, help="Output directory")
    parser.add_argument("--no-enrichment", action="store_true", help="Skip the remote API")
    parser.add_argument(
        "--reference-time", type=datetime.fromisoformat, default=None,
        help="ISO timestamp used as 'now' (default: last message)",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    settings = Settings.from_env()
    if args.no_enrichment:
        settings = settings.model_copy(update={"api_key": None})
    out_dir = args.out or settings.data_dir / "reports"
    asyncio.run(run_pipeline(
        args.transcripts, out_dir, settings, args.reference_time, args.accumulative,
    ))


if __name__ == "__main__":
    main()
