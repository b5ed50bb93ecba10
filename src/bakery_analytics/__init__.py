"""Order, client and product analytics from exported bakery chat transcripts."""
from .config import Settings, Tuning
from .models import AnalysisResult, ClientMetrics, ClientProfile, Message, Order
from .orchestrator import Analyzer, analyze_transcript
from .parser import group_conversations, parse_transcript

__all__ = [
    "AnalysisResult",
    "Analyzer",
    "ClientMetrics",
    "ClientProfile",
    "Message",
    "Order",
    "Settings",
    "Tuning",
    "analyze_transcript",
    "group_conversations",
    "parse_transcript",
]
