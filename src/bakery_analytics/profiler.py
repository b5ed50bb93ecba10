"""Client risk/value profiling: remote enrichment with a deterministic fallback."""
import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod

from .cache import FileCache
from .client import APIClient, parse_json
from .config import Tuning
from .models import ClientMetrics, ClientProfile, Order
from .prompts import ENRICH_PROMPT

logger = logging.getLogger(__name__)

RECENT_MESSAGES = 5
RECENT_ORDERS = 3


def risk_score(metrics: ClientMetrics, tuning: Tuning) -> int:
    w = tuning.risk
    return (
        w.difficulty * metrics.difficulty_score
        + w.payment_issue * metrics.payment_issues
        + w.more_complaints * (metrics.complaints > metrics.compliments)
        + w.slow_response * (metrics.response_time_hours > w.slow_response_hours)
        + w.low_frequency * (metrics.order_frequency < 1)
    )


def risk_band(score: int, tuning: Tuning) -> str:
    if score >= tuning.high_risk_score:
        return "high"
    if score >= tuning.medium_risk_score:
        return "medium"
    return "low"


class ProfileStrategy(ABC):
    """Something that can describe a client from its metrics."""

    @abstractmethod
    async def describe(
        self,
        metrics: ClientMetrics,
        recent_messages: list[str],
        recent_orders: list[Order],
    ) -> ClientProfile | None:
        """Return a profile, or None when this strategy has nothing to offer."""


class FallbackProfiler(ProfileStrategy):
    """Rule-based profile; always produces a complete, non-empty narrative."""

    BAND_TEXT = {
        "high": (
            "Cliente de alto riesgo: múltiples factores problemáticos detectados",
            "Implementar seguimiento semanal y protocolo de atención especial",
            "complejo",
        ),
        "medium": (
            "Cliente con complejidad moderada que requiere atención",
            "Monitorear mensualmente y mejorar la comunicación",
            "moderado",
        ),
        "low": (
            "Cliente estable con comportamiento predecible",
            "Mantener el nivel de servicio actual",
            "estable",
        ),
    }

    def __init__(self, tuning: Tuning | None = None):
        self.tuning = tuning or Tuning()

    async def describe(self, metrics, recent_messages, recent_orders):
        return self.profile(metrics)

    def profile(self, metrics: ClientMetrics) -> ClientProfile:
        band = risk_band(risk_score(metrics, self.tuning), self.tuning)
        insight, recommendation, temper = self.BAND_TEXT[band]
        insights = [insight]
        recommendations = [recommendation]

        if metrics.total_spent > 100000:
            insights.append(f"Cliente de muy alto valor: ${metrics.total_spent:,.0f} en pedidos estimados")
            recommendations.append("Ofrecer atención prioritaria y condiciones preferentes")
        elif metrics.total_spent > 50000:
            insights.append(f"Cliente de alto valor: ${metrics.total_spent:,.0f} en pedidos estimados")
            recommendations.append("Proponer pedidos programados para asegurar la recurrencia")

        if metrics.order_frequency > 5:
            insights.append("Pide casi a diario")
            recommendations.append("Reservar capacidad de producción para sus pedidos recurrentes")
        elif metrics.order_frequency < 1:
            insights.append("Compra esporádica: menos de un pedido por semana")
            recommendations.append("Contactar para reactivar con una oferta especial")

        if metrics.total_changes > self.tuning.many_changes:
            insights.append("Cliente con alta frecuencia de cambios, posible insatisfacción")
            recommendations.append("Consultar preferencias específicas para reducir cambios")

        if metrics.preferred_products:
            top = metrics.preferred_products[0]
            insights.append(f"Producto favorito: {top.product} ({top.percentage}% de sus piezas)")
            recommendations.append(f"Garantizar disponibilidad de {top.product}")

        if metrics.total_spent > 100000:
            value = "Muy alto valor"
        elif metrics.total_spent > 50000:
            value = "Alto valor"
        elif metrics.total_spent > 20000:
            value = "Valor medio"
        else:
            value = "Valor básico"

        if metrics.satisfaction_score > 2:
            satisfaction = "Cliente muy satisfecho, baja probabilidad de abandono"
        elif metrics.satisfaction_score > 0:
            satisfaction = "Cliente satisfecho con el servicio"
        else:
            satisfaction = "Cliente con insatisfacciones que requieren atención"

        if metrics.order_frequency < 1:
            next_action = "Contactar para reactivar con oferta especial"
        elif metrics.exclusions:
            next_action = "Confirmar exclusiones antes de armar el próximo pedido"
        else:
            next_action = "Mantener comunicación regular y confirmar disponibilidad"

        events = []
        if metrics.total_orders < 3:
            events.append("NEW_CLIENT")
        if metrics.order_frequency > 4:
            events.append("FREQUENT_CLIENT")
        if metrics.payment_issues > 0:
            events.append("PENDING_PAYMENT")
        if metrics.complaints > metrics.compliments:
            events.append("QUALITY_COMPLAINT")
        if metrics.satisfaction_score > 2:
            events.append("HIGH_SATISFACTION")

        frequent = metrics.order_frequency > 3
        return ClientProfile(
            insights=insights,
            recommendations=recommendations,
            risk_level=band,
            behavior_profile=(
                f"Cliente {temper} con {metrics.total_orders} pedidos "
                f"y {metrics.avg_pieces_per_order:.0f} piezas por pedido"
            ),
            communication_style=(
                "Comunicación lenta pero consistente"
                if metrics.response_time_hours > 4
                else "Comunicación eficiente y directa"
            ),
            business_value=value,
            predicted_actions=[
                "Continuará con pedidos regulares" if frequent else "Pedidos esporádicos",
                "Mantendrá la relación comercial" if metrics.satisfaction_score > 0 else "Riesgo de abandono",
            ],
            satisfaction_analysis=satisfaction,
            customer_profile=(
                f"Cliente {'frecuente' if frequent else 'ocasional'} que "
                + (
                    "confía en el surtido de la panadería."
                    if metrics.general_orders > metrics.specific_orders
                    else "tiene preferencias específicas."
                )
                + (" Solicita cambios regularmente." if metrics.total_changes > 3 else "")
                + (" Tiene exclusiones específicas." if metrics.exclusions else "")
            ),
            key_preferences=[p.product for p in metrics.preferred_products[:3]] or ["surtido variado"],
            key_exclusions=list(metrics.exclusions),
            next_best_action=next_action,
            significant_events=events,
            source="fallback",
        )


def build_prompt(metrics: ClientMetrics, recent_messages: list[str], recent_orders: list[Order]) -> str:
    preferred = ", ".join(f"{p.product}({p.percentage}%)" for p in metrics.preferred_products) or "ninguno"
    orders = "\n".join(
        f"- {o.date:%Y-%m-%d}: "
        + (", ".join(f"{m.count} {m.product}" for m in o.products) or f"{o.total_pieces} piezas")
        + f" ({o.total_pieces} pzs, ${o.estimated_value:,.0f})"
        for o in recent_orders[-RECENT_ORDERS:]
    ) or "- ninguno"
    messages = "\n".join(f"- {m}" for m in recent_messages[-RECENT_MESSAGES:]) or "- ninguno"
    return ENRICH_PROMPT.format(
        name=metrics.name,
        total_orders=metrics.total_orders,
        total_spent=metrics.total_spent,
        avg_order_value=metrics.avg_order_value,
        order_frequency=metrics.order_frequency,
        response_time_hours=metrics.response_time_hours,
        payment_issues=metrics.payment_issues,
        complaints=metrics.complaints,
        compliments=metrics.compliments,
        difficulty_score=metrics.difficulty_score,
        patterns=", ".join(metrics.order_patterns) or "ninguno",
        preferred=preferred,
        exclusions=", ".join(metrics.exclusions) or "ninguna",
        general_orders=metrics.general_orders,
        specific_orders=metrics.specific_orders,
        total_changes=metrics.total_changes,
        destinations=", ".join(
            f"{d.destination}({d.orders} pedidos)" for d in metrics.sub_destinations
        ) or "ninguno",
        recent_messages=messages,
        recent_orders=orders,
    )


class RemoteEnrichment(ProfileStrategy):
    """Profile written by the text-generation API, validated before use."""

    def __init__(
        self,
        api_client: APIClient,
        cache: FileCache[ClientProfile] | None = None,
        max_concurrent: int = 5,
    ):
        self.api = api_client
        self.cache = cache
        self.max_concurrent = max_concurrent
        self._semaphore: asyncio.Semaphore | None = None
        self._loop = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        # One semaphore per event loop; a semaphore cannot be shared across loops
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            self._loop = loop
        return self._semaphore

    def _read_cache(self, key: str, name: str) -> ClientProfile | None:
        """Cached profile, or None; unreadable entries are dropped as misses."""
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cached profile for %s: %s", name, e)
        try:
            self.cache.delete(key)
        except OSError as e:
            logger.warning("Could not remove cached profile %s: %s", key, e)
        return None

    def _write_cache(self, key: str, profile: ClientProfile, name: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.save(key, profile)
        except OSError as e:
            logger.warning("Could not cache profile for %s: %s", name, e)

    async def describe(self, metrics, recent_messages, recent_orders):
        prompt = build_prompt(metrics, recent_messages, recent_orders)
        key = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:24]

        cached = self._read_cache(key, metrics.name)
        if cached is not None:
            return cached

        try:
            content = await self.api.call(prompt, semaphore=self._get_semaphore())
        except Exception as e:
            logger.warning("Enrichment unavailable for %s: %s", metrics.name, e)
            return None

        try:
            data = parse_json(content)
            data["source"] = "enrichment"
            profile = ClientProfile.model_validate(data)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too
            logger.warning("Discarding malformed enrichment for %s: %s", metrics.name, e)
            return None

        self._write_cache(key, profile, metrics.name)
        return profile


class ProfileSelector:
    """Picks the remote strategy when it can help, the fallback otherwise."""

    def __init__(self, fallback: FallbackProfiler, remote: ProfileStrategy | None = None):
        self.fallback = fallback
        self.remote = remote

    async def profile(
        self,
        metrics: ClientMetrics,
        recent_messages: list[str],
        recent_orders: list[Order],
    ) -> ClientProfile:
        if self.remote is not None and metrics.total_orders > 0:
            profile = await self.remote.describe(metrics, recent_messages, recent_orders)
            if profile is not None:
                return profile
        return self.fallback.profile(metrics)
