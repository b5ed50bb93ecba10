"""Order, product and price detection over client messages."""
import logging
import re
from collections import Counter

from .config import Tuning
from .models import ConversationTag, Extraction, Message, Order, ProductMention

logger = logging.getLogger(__name__)

WEEKDAYS = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]

# Amounts like $1,500 / 1.500,00 / 2500; numbers followed by "piezas" are counts
PRICE_RE = re.compile(
    r"\$?\s?\b(\d{1,3}(?:[.,]\d{3})+|\d{1,6})(?:,(\d{2}))?\b(?!\s*piezas?\b)",
    re.IGNORECASE,
)
NO_RE = re.compile(r"\bno\b")


def order_type(pieces: int, tuning: Tuning) -> str:
    if pieces >= tuning.large_order_pieces:
        return "large"
    if pieces >= tuning.medium_order_pieces:
        return "medium"
    return "small"


class OrderExtractor:
    """Scans one client's conversation and yields orders and counters."""

    def __init__(self, tuning: Tuning | None = None):
        self.tuning = tuning or Tuning()
        self.products = [
            (p.name, re.compile(p.pattern, re.IGNORECASE), p.unit_price)
            for p in self.tuning.products
        ]
        self.exclusion_res = [re.compile(p, re.IGNORECASE) for p in self.tuning.exclusion_patterns]
        self.destination_res = [re.compile(p, re.IGNORECASE) for p in self.tuning.destination_patterns]

        number = r"\d+|" + "|".join(
            re.escape(w) for w in sorted(self.tuning.number_words, key=len, reverse=True)
        )
        self.pieces_re = re.compile(rf"\b({number})\s*piezas?\b", re.IGNORECASE)
        self.count_before_re = re.compile(rf"\b({number})\s*$", re.IGNORECASE)
        self.changes_re = re.compile(rf"\b({number})\s+cambios?\b", re.IGNORECASE)
        # "2 de 40", "2 de 40 pf", "3 paquetes de 20"
        self.package_res = [
            re.compile(rf"\b({number})\s+de\s+(\d+)\b(?:\s+pf\b)?", re.IGNORECASE),
            re.compile(rf"\b({number})\s+paquetes?\s+de\s+(\d+)\b", re.IGNORECASE),
        ]
        # "20 piezas, que incluya 5 conchas", "20 con 5 donas"
        self.mixed_re = re.compile(
            r"\b(\d+)\s+(?:piezas?,?\s+)?(?:que\s+)?(?:incluyan?|incluya|con|que\s+tenga)\s+(\d+)\s+[a-záéíóúñ]",
            re.IGNORECASE,
        )

    def _to_number(self, token: str) -> int:
        if token.isdigit():
            return int(token)
        return self.tuning.number_words.get(token.lower(), 0)

    def explicit_pieces(self, content: str) -> int:
        return sum(self._to_number(m.group(1)) for m in self.pieces_re.finditer(content))

    def package_orders(self, content: str) -> list[tuple[int, int]]:
        """(packages, pieces per package) for every package-style request."""
        found = []
        for regex in self.package_res:
            for match in regex.finditer(content):
                count, size = self._to_number(match.group(1)), int(match.group(2))
                if size > 0:
                    found.append((count or 1, size))
        return found

    def mixed_total(self, content: str) -> int:
        """Total pieces of an assorted order that names some of its products, else 0."""
        match = self.mixed_re.search(content)
        return int(match.group(1)) if match else 0

    def count_changes(self, content: str) -> int:
        return sum(self._to_number(m.group(1)) for m in self.changes_re.finditer(content))

    def find_destination(self, content: str) -> str | None:
        for regex in self.destination_res:
            match = regex.search(content)
            if match:
                return match.group(1).strip()
        return None

    def detect_products(self, content: str) -> list[ProductMention]:
        """Find product mentions with the quantity written right before each.

        Overlapping matches of different catalogue entries are resolved in
        favour of the longest span, so "pan de dulce" is not also a "pan".
        """
        candidates = []
        for rank, (name, regex, _) in enumerate(self.products):
            for match in regex.finditer(content):
                if match.end() > match.start():
                    candidates.append((match.start(), match.end(), rank, name))
        candidates.sort(key=lambda c: (-(c[1] - c[0]), c[0], c[2]))

        taken: list[tuple[int, int]] = []
        accepted = []
        for start, end, _, name in candidates:
            if any(start < t_end and t_start < end for t_start, t_end in taken):
                continue
            taken.append((start, end))
            accepted.append((start, name))
        accepted.sort()

        mentions = []
        for start, name in accepted:
            before = self.count_before_re.search(content[:start])
            count = self._to_number(before.group(1)) if before else 1
            mentions.append(ProductMention(product=name, count=count or 1))
        return mentions

    def explicit_price(self, content: str) -> float:
        """Largest stated amount above the minimum order value, else 0."""
        best = 0.0
        for match in PRICE_RE.finditer(content):
            amount = float(re.sub(r"[.,]", "", match.group(1)))
            if match.group(2):
                amount += int(match.group(2)) / 100
            if amount > self.tuning.min_explicit_price:
                best = max(best, amount)
        return best

    def response_time(self, previous: Message | None, message: Message) -> float | None:
        """Hours since the bakery asked for a quantity, if that is what this answers."""
        if previous is None or previous.is_client:
            return None
        if self.tuning.response_cue not in previous.content.lower():
            return None
        hours = (message.timestamp - previous.timestamp).total_seconds() / 3600
        if 0 <= hours < self.tuning.response_window_hours:
            return hours
        return None

    def is_payment_issue(self, lowered: str) -> bool:
        return any(phrase in lowered for phrase in self.tuning.payment_phrases)

    def is_no_response(self, lowered: str) -> bool:
        text = lowered.strip()
        if text == "hoy no":
            return True
        return len(text) < self.tuning.no_response_max_length and bool(NO_RE.search(text))

    def extract_exclusions(self, content: str) -> list[str]:
        found = []
        for regex in self.exclusion_res:
            for match in regex.finditer(content):
                item = match.group(1).strip()
                if item:
                    found.append(item)
        return found

    def build_order(self, message: Message, response_hours: float | None = None) -> Order | None:
        """Materialize an order from one client message, or None.

        Package requests ("2 de 40") fix the piece total first, then an
        explicit "N piezas", then the total of a mixed order; only without
        any of those do product counts add up to the total.
        """
        content = message.content
        packages = self.package_orders(content)
        mixed = self.mixed_total(content)
        pieces = (
            sum(count * size for count, size in packages)
            or self.explicit_pieces(content)
            or mixed
        )
        explicit_count = pieces > 0

        mentions = self.detect_products(content)
        prices = {name: price for name, _, price in self.products}
        value = 0.0
        for mention in mentions:
            if not explicit_count:
                pieces += mention.count
            value += mention.count * prices[mention.product]

        if mixed:
            category = "mixed"
        elif any(m.product != self.tuning.assorted_product for m in mentions):
            category = "specific"
        else:
            category = "general"

        assorted = 0
        if category == "mixed":
            assorted = max(0, pieces - sum(m.count for m in mentions))
            value += assorted * self.tuning.average_unit_price

        value = max(value, self.explicit_price(content))

        if pieces <= 0 and not mentions:
            return None
        if value == 0 and pieces > 0:
            value = pieces * self.tuning.average_unit_price

        return Order(
            date=message.timestamp,
            client=message.sender,
            products=mentions,
            total_pieces=pieces,
            order_type=order_type(pieces, self.tuning),
            category=category,
            estimated_value=value,
            response_time_hours=response_hours or 0.0,
            day_of_week=WEEKDAYS[message.timestamp.weekday()],
            hour=message.timestamp.hour,
            assorted_pieces=assorted,
            package_format=", ".join(f"{c} de {s}" for c, s in packages) or None,
            changes=self.count_changes(content),
            destination=self.find_destination(content),
        )

    def extract(self, client: str, conversation: list[Message]) -> Extraction:
        result = Extraction(client=client)
        products: Counter = Counter()
        exclusions: dict[str, None] = {}

        for i, message in enumerate(conversation):
            lowered = message.content.lower()
            if not message.is_client:
                for phrase, kind in self.tuning.conversation_tags.items():
                    if phrase in lowered:
                        result.tags.append(ConversationTag(
                            kind=kind, content=message.content,
                            timestamp=message.timestamp, client=client,
                        ))
                continue
            if message.sender != client:
                continue

            result.message_count += 1
            # Substring matching: "buenos" is praise, "buenas tardes" a complaint
            if any(word in lowered for word in self.tuning.positive_words):
                result.compliments += 1
            if any(word in lowered for word in self.tuning.negative_words):
                result.complaints += 1
            result.changes += self.count_changes(message.content)
            if self.is_payment_issue(lowered):
                result.payment_issues += 1
            if self.is_no_response(lowered):
                result.no_response_days += 1
            for item in self.extract_exclusions(message.content):
                exclusions.setdefault(item, None)

            previous = conversation[i - 1] if i > 0 else None
            response = self.response_time(previous, message)
            order = self.build_order(message, response)
            if order is None:
                continue
            result.orders.append(order)
            for mention in order.products:
                products[mention.product] += mention.count
            if response is not None:
                result.response_samples.append(response)

        result.product_counts = dict(products)
        result.exclusions = list(exclusions)
        logger.debug("Extracted %d orders for %s", len(result.orders), client)
        return result
