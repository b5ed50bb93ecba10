"""Runtime settings and business tuning values."""
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class ProductPattern(BaseModel):
    """Catalogue entry: how a product is written in chats and what one piece costs."""
    name: str
    pattern: str
    unit_price: int


# Unit prices are the bakery's own estimates, in pesos.
DEFAULT_PRODUCTS = [
    ProductPattern(name="conchas blancas", pattern=r"\b(?:conchas?|conchitas?)\s*(?:blancas?|blanquitas?)?\b", unit_price=800),
    ProductPattern(name="panes largos", pattern=r"\b(?:panes?|panecitos?)\s*(?:largos?|larguitos?)?\b", unit_price=1000),
    ProductPattern(name="armadillos", pattern=r"\b(?:armadillos?|armadillitos?)\b", unit_price=900),
    ProductPattern(name="pastelitos", pattern=r"\b(?:pastelitos?|pasteles?|pastelillos?)\b", unit_price=1200),
    ProductPattern(name="donas", pattern=r"\b(?:donas?|donitas?|donutas?)\b", unit_price=1100),
    ProductPattern(name="bisquete", pattern=r"\b(?:bisquetes?|bisquetitos?|biskets?|bisquets?)\b", unit_price=700),
    ProductPattern(name="roles", pattern=r"\b(?:roles?|rolitos?|rollitos?)\b", unit_price=800),
    ProductPattern(name="ojos", pattern=r"\b(?:ojos?|ojitos?)\b", unit_price=900),
    ProductPattern(name="hojaldrado", pattern=r"\b(?:hojaldrados?|hojaldraditos?)\b", unit_price=1000),
    ProductPattern(name="tostados", pattern=r"\b(?:tostados?|tostaditos?)\b", unit_price=1100),
    ProductPattern(name="pan blanco", pattern=r"\b(?:panes?)\s*(?:blancos?|blanquitos?)\b", unit_price=600),
    ProductPattern(name="surtidas", pattern=r"\b(?:piezas?\s*)?(?:surtidas?|surtiditas?|variadas?)\b", unit_price=850),
    ProductPattern(name="bolillo de mantequilla", pattern=r"\b(?:bolillos?\s*(?:de\s*)?mantequilla)\b", unit_price=750),
    ProductPattern(name="tostadito", pattern=r"\b(?:tostaditos?|tostaditas?)\b", unit_price=950),
    ProductPattern(name="marranitos", pattern=r"\b(?:marranitos?|marranitas?|cochinitos?)\b", unit_price=1000),
    ProductPattern(name="pan de dulce", pattern=r"\b(?:panes?\s*de\s*dulce|pan\s*dulce)\b", unit_price=900),
    ProductPattern(name="repostería", pattern=r"\b(?:repostería|reposteria)\b", unit_price=1500),
    ProductPattern(name="pan de esponja", pattern=r"\b(?:panes?\s*de\s*esponja|pan\s*esponja)\b", unit_price=800),
    ProductPattern(name="ojos de pancha", pattern=r"\b(?:ojos?\s*de\s*pancha|ojo\s*pancha)\b", unit_price=950),
    ProductPattern(name="panqué chino", pattern=r"\b(?:panqués?\s*chinos?|panque\s*chino)\b", unit_price=1200),
    ProductPattern(name="eses", pattern=r"\b(?:eses?|esitas?)\b", unit_price=850),
    ProductPattern(name="payasos", pattern=r"\b(?:payasos?|payasitos?)\b", unit_price=1100),
    ProductPattern(name="rebanadas", pattern=r"\b(?:rebanadas?|rebanaditas?)\b", unit_price=700),
    ProductPattern(name="borrachos", pattern=r"\b(?:borrachos?|borrachitos?)\b", unit_price=1300),
    ProductPattern(name="ruedas", pattern=r"\b(?:ruedas?|rueditas?)\b", unit_price=900),
    ProductPattern(name="careocas", pattern=r"\b(?:careocas?|careokas?)\b", unit_price=950),
    ProductPattern(name="limas", pattern=r"\b(?:limas?|limitas?)\b", unit_price=800),
    ProductPattern(name="troncos", pattern=r"\b(?:troncos?|tronquitos?)\b", unit_price=1000),
    ProductPattern(name="costras", pattern=r"\b(?:costras?|costritas?)\b", unit_price=750),
    ProductPattern(name="viboritas", pattern=r"\b(?:viboritas?)\b", unit_price=850),
    ProductPattern(name="tubos rellenos", pattern=r"\b(?:tubos?\s*rellenos?)\b", unit_price=1400),
    ProductPattern(name="kekis", pattern=r"\b(?:kekis?|kekitos?|keks?)\b", unit_price=1100),
    ProductPattern(name="hilos", pattern=r"\b(?:hilos?|hilitos?)\b", unit_price=800),
    ProductPattern(name="bigotes", pattern=r"\b(?:bigotes?|bigotitos?)\b", unit_price=900),
    ProductPattern(name="rosca de reyes", pattern=r"\b(?:roscas?\s*de\s*reyes?|rosca\s*reyes?)\b", unit_price=2500),
]

NUMBER_WORDS = {
    "uno": 1, "una": 1, "un": 1, "dos": 2, "tres": 3, "cuatro": 4, "cinco": 5,
    "seis": 6, "siete": 7, "ocho": 8, "nueve": 9, "diez": 10, "once": 11,
    "doce": 12, "trece": 13, "catorce": 14, "quince": 15, "dieciséis": 16,
    "dieciseis": 16, "diecisiete": 17, "dieciocho": 18, "diecinueve": 19,
    "veinte": 20, "veintiuno": 21, "veintidós": 22, "veintidos": 22,
    "veintitrés": 23, "veintitres": 23, "veinticuatro": 24, "veinticinco": 25,
    "treinta": 30, "cuarenta": 40, "cincuenta": 50, "sesenta": 60,
    "setenta": 70, "ochenta": 80, "noventa": 90, "cien": 100,
}


class DifficultyWeights(BaseModel):
    messages_per_order: int = 1
    slow_response: int = 2
    payment_issue: int = 3
    no_response: int = 2
    low_frequency: int = 1
    more_complaints: int = 2


class RiskWeights(BaseModel):
    difficulty: int = 2
    payment_issue: int = 3
    more_complaints: int = 2
    slow_response: int = 2
    low_frequency: int = 1
    slow_response_hours: float = 6.0


class Tuning(BaseModel):
    """Hardcoded business tuning of one bakery's vocabulary and currency.

    The magnitudes are unverified against real outcomes; change them only
    with a product requirement behind the change.
    """
    bakery_name: str = "panaderia quilantan"
    products: list[ProductPattern] = Field(default_factory=lambda: list(DEFAULT_PRODUCTS))
    number_words: dict[str, int] = Field(default_factory=lambda: dict(NUMBER_WORDS))
    positive_words: list[str] = Field(default_factory=lambda: [
        "gracias", "perfecto", "excelente", "bueno", "ok", "bien", "genial", "súper", "rico",
    ])
    negative_words: list[str] = Field(default_factory=lambda: [
        "problema", "mal", "error", "queja", "reclamo", "demora", "tarde",
        "feo", "horrible", "duro", "viejo",
    ])
    payment_phrases: list[str] = Field(default_factory=lambda: [
        "pago", "mañana lo pago", "no lo pague", "después pago", "luego pago", "debo",
    ])
    exclusion_patterns: list[str] = Field(default_factory=lambda: [
        r"no\s+me\s+ponga\s+([^,.]+)",
        r"\bsin\s+([^,.]+)",
        r"no\s+me\s+mande\s+([^,.]+)",
        r"no\s+quiero\s+([^,.]+)",
        r"no\s+me\s+gusta\s+([^,.]+)",
    ])
    destination_patterns: list[str] = Field(default_factory=lambda: [
        r"\bpara\s+(?:la\s+)?(fruter[ií]a\s+[^,\s.]+)",
        r"\bpara\s+([^,\s.]+\s+fruter[ií]a)",
        r"\bpara\s+(?:la\s+)?(tienda\s+[^,\s.]+)",
    ])
    conversation_tags: dict[str, str] = Field(default_factory=lambda: {
        "el día de hoy no estaremos contando con": "production_notice",
        "ya va a salir la camioneta": "delivery_info",
        "cuántas piezas le enviamos": "order_inquiry",
    })

    response_cue: str = "cuántas piezas"
    response_window_hours: float = 24.0
    min_explicit_price: float = 1000.0
    average_unit_price: float = 850.0
    no_response_max_length: int = 20
    # Mentions of this product alone still make an assorted order
    assorted_product: str = "surtidas"

    large_order_pieces: int = 25
    medium_order_pieces: int = 15

    difficulty: DifficultyWeights = Field(default_factory=DifficultyWeights)
    risk: RiskWeights = Field(default_factory=RiskWeights)
    high_risk_score: int = 8
    medium_risk_score: int = 4

    very_high_popularity: int = 50
    high_popularity: int = 20
    medium_popularity: int = 10

    preferred_products_limit: int = 5

    # Pattern tags
    large_orders_avg_pieces: float = 25
    frequent_orders_per_week: float = 4
    slow_response_hours: float = 3
    inactive_no_days: int = 3
    satisfied_score: int = 2
    dissatisfied_score: int = -1
    high_value_avg_order: float = 20000
    many_changes: int = 5

    # Segments and churn
    vip_frequency: float = 3
    vip_spent: float = 50000
    at_risk_days: int = 15
    new_client_orders: int = 3
    churn_days: int = 20
    churn_difficulty: int = 4


class Settings(BaseModel):
    """Runtime settings for the remote enrichment collaborator and storage."""
    api_key: str | None = None
    model: str = "claude-haiku-4-5"
    timeout: float = 30.0
    max_retries: int = 2
    max_concurrent: int = 5
    data_dir: Path = Path("data")
    tuning: Tuning = Field(default_factory=Tuning)

    @property
    def enrichment_enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment, reading .env first."""
        load_dotenv()
        return cls(
            api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            model=os.getenv("BAKERY_ANALYTICS_MODEL", "claude-haiku-4-5"),
            timeout=float(os.getenv("BAKERY_ANALYTICS_TIMEOUT", "30")),
            max_retries=int(os.getenv("BAKERY_ANALYTICS_MAX_RETRIES", "2")),
            max_concurrent=int(os.getenv("BAKERY_ANALYTICS_MAX_CONCURRENT", "5")),
            data_dir=Path(os.getenv("BAKERY_ANALYTICS_DATA_DIR", "data")),
        )
