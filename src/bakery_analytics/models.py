"""Data models for transcript analysis layers."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["low", "medium", "high"]
OrderType = Literal["small", "medium", "large"]
OrderCategory = Literal["general", "specific", "mixed"]


class Message(BaseModel):
    """One timestamped chat line."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    sender: str
    content: str
    is_client: bool

    def to_line(self) -> str:
        """Serialize back into the exported chat format."""
        ts = self.timestamp
        hour = ts.hour % 12 or 12
        period = "AM" if ts.hour < 12 else "PM"
        return (
            f"[{hour}:{ts.minute:02d} {period}, {ts.month}/{ts.day}/{ts.year}] "
            f"{self.sender}: {self.content}"
        )


class ProductMention(BaseModel):
    product: str
    count: int


class Order(BaseModel):
    """Purchase request inferred from a single client message."""
    model_config = ConfigDict(frozen=True)

    date: datetime
    client: str
    products: list[ProductMention]
    total_pieces: int
    order_type: OrderType
    category: OrderCategory = "general"
    estimated_value: float
    response_time_hours: float
    day_of_week: str
    hour: int
    assorted_pieces: int = 0
    package_format: str | None = None
    changes: int = 0
    destination: str | None = None


class ConversationTag(BaseModel):
    """Operational notice found in a bakery message."""
    kind: str
    content: str
    timestamp: datetime
    client: str | None = None


class Extraction(BaseModel):
    """Everything pulled out of one client's conversation before aggregation."""
    client: str
    message_count: int = 0
    orders: list[Order] = Field(default_factory=list)
    product_counts: dict[str, int] = Field(default_factory=dict)
    compliments: int = 0
    complaints: int = 0
    payment_issues: int = 0
    no_response_days: int = 0
    changes: int = 0
    response_samples: list[float] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list)
    tags: list[ConversationTag] = Field(default_factory=list)


class SubDestination(BaseModel):
    """Secondary delivery point a client orders for."""
    destination: str
    orders: int = 0
    pieces: int = 0


class PreferredProduct(BaseModel):
    product: str
    count: int
    percentage: int


class ClientMetrics(BaseModel):
    """Behavioral and financial metrics for one client."""
    name: str
    message_count: int = 0
    total_orders: int = 0
    total_pieces: int = 0
    total_spent: float = 0.0
    avg_order_value: float = 0.0
    avg_pieces_per_order: float = 0.0
    messages_per_order: float = 0.0
    response_time_hours: float = 0.0
    response_samples: int = 0
    order_frequency: float = 0.0
    complaints: int = 0
    compliments: int = 0
    satisfaction_score: int = 0
    payment_issues: int = 0
    no_response_days: int = 0
    general_orders: int = 0
    specific_orders: int = 0
    general_pieces: int = 0
    specific_pieces: int = 0
    total_changes: int = 0
    sub_destinations: list[SubDestination] = Field(default_factory=list)
    difficulty_score: int = 0
    preferred_products: list[PreferredProduct] = Field(default_factory=list)
    order_patterns: list[str] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list)
    last_order_date: datetime
    days_since_last_order: int = 0
    segment: str = "new"
    churn_risk: RiskLevel = "low"


class ClientProfile(BaseModel):
    """Risk/value narrative for a client, remote or deterministic."""
    insights: list[str] = Field(min_length=1)
    recommendations: list[str] = Field(min_length=1)
    risk_level: RiskLevel
    behavior_profile: str
    communication_style: str
    business_value: str
    predicted_actions: list[str]
    satisfaction_analysis: str
    customer_profile: str = ""
    key_preferences: list[str] = Field(default_factory=list)
    key_exclusions: list[str] = Field(default_factory=list)
    next_best_action: str = ""
    significant_events: list[str] = Field(default_factory=list)
    source: Literal["enrichment", "fallback"] = "fallback"


class ClientReport(BaseModel):
    metrics: ClientMetrics
    profile: ClientProfile


class ProductStat(BaseModel):
    product: str
    total_count: int
    popularity: str
    estimated_revenue: float
    client_count: int


class TrendPoint(BaseModel):
    kind: Literal["hour", "weekday", "month"]
    period: str
    activity: int


class AnalysisResult(BaseModel):
    """Full analysis of one transcript batch."""
    total_clients: int
    total_orders: int
    total_pieces: int
    total_revenue: float
    avg_response_time_hours: float
    total_changes: int = 0
    clients: list[ClientReport]
    products: list[ProductStat]
    trends: list[TrendPoint]
    orders: list[Order]
    segment_stats: dict[str, int]
    churn_risk_stats: dict[str, int] = Field(default_factory=dict)
    order_category_stats: dict[str, int] = Field(default_factory=dict)
    exclusion_stats: dict[str, int] = Field(default_factory=dict)
    package_order_stats: dict[str, int] = Field(default_factory=dict)
    conversation_tags: list[ConversationTag]
    reference_time: datetime


class JobStatus(BaseModel):
    """Lifecycle record of an asynchronous analysis job."""
    job_id: str
    status: Literal["pending", "processing", "completed", "failed"]
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: str | None = None
