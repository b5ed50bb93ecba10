from datetime import datetime

import pytest

from bakery_analytics.config import Tuning
from bakery_analytics.extractor import OrderExtractor, order_type
from bakery_analytics.models import Message
from bakery_analytics.parser import parse_transcript


@pytest.fixture
def extractor():
    return OrderExtractor()


def client_message(content: str, when: datetime = datetime(2025, 3, 7, 10, 19)) -> Message:
    return Message(timestamp=when, sender="Cliente", content=content, is_client=True)


def extract(extractor, text: str, client: str = "Cliente"):
    return extractor.extract(client, parse_transcript(text))


def test_products_with_counts(extractor):
    order = extractor.build_order(client_message("2 pastelitos 1 donas"))
    assert order is not None
    assert order.client == "Cliente"
    assert [(m.product, m.count) for m in order.products] == [("pastelitos", 2), ("donas", 1)]
    assert order.total_pieces == 3
    assert order.estimated_value == 2 * 1200 + 1 * 1100
    assert order.order_type == "small"
    assert order.day_of_week == "viernes"
    assert order.hour == 10


def test_explicit_piece_count_wins_over_product_counts(extractor):
    order = extractor.build_order(client_message("30 piezas, 5 donas"))
    assert order.total_pieces == 30
    assert order.estimated_value == 5 * 1100
    assert order.order_type == "large"


def test_assorted_pieces(extractor):
    order = extractor.build_order(client_message("20 piezas surtidas"))
    assert order.total_pieces == 20
    assert [(m.product, m.count) for m in order.products] == [("surtidas", 20)]
    assert order.estimated_value == 20 * 850
    assert order.order_type == "medium"


def test_pieces_without_products_use_average_price(extractor):
    order = extractor.build_order(client_message("15 piezas"))
    assert order.products == []
    assert order.estimated_value == 15 * 850


def test_higher_explicit_price_replaces_estimate(extractor):
    order = extractor.build_order(client_message("10 conchas por $12,000"))
    assert order.total_pieces == 10
    assert order.estimated_value == 12000


def test_lower_explicit_price_keeps_estimate(extractor):
    order = extractor.build_order(client_message("10 pastelitos, son $1,500"))
    assert order.estimated_value == 10 * 1200


def test_price_alone_is_not_an_order(extractor):
    assert extractor.build_order(client_message("le debo $2,500")) is None


@pytest.mark.parametrize("content", [
    "hola buenos días",
    "25",
    "gracias",
])
def test_messages_without_products_or_pieces_are_not_orders(extractor, content):
    assert extractor.build_order(client_message(content)) is None


def test_spanish_number_words(extractor):
    assert extractor.build_order(client_message("veinte piezas")).total_pieces == 20
    order = extractor.build_order(client_message("dos donas y tres roles"))
    assert [(m.product, m.count) for m in order.products] == [("donas", 2), ("roles", 3)]


def test_longest_product_match_wins(extractor):
    order = extractor.build_order(client_message("3 panes de dulce"))
    assert [(m.product, m.count) for m in order.products] == [("pan de dulce", 3)]
    assert order.estimated_value == 3 * 900


def test_product_without_count_counts_one(extractor):
    order = extractor.build_order(client_message("me manda una rosca de reyes"))
    assert [(m.product, m.count) for m in order.products] == [("rosca de reyes", 1)]
    assert order.estimated_value == 2500


def test_order_type_buckets():
    tuning = Tuning()
    assert order_type(25, tuning) == "large"
    assert order_type(15, tuning) == "medium"
    assert order_type(14, tuning) == "small"


def test_response_time_after_quantity_question(extractor):
    extraction = extract(extractor, (
        "[7:00 AM, 3/7/2025] Panaderia Quilantan: cuántas piezas\n"
        "[8:00 AM, 3/7/2025] Cliente: 5 donas\n"
    ))
    [order] = extraction.orders
    assert order.response_time_hours == 1.0
    assert extraction.response_samples == [1.0]


def test_response_time_outside_window_is_zero(extractor):
    extraction = extract(extractor, (
        "[7:00 AM, 3/7/2025] Panaderia Quilantan: cuántas piezas\n"
        "[8:00 AM, 3/8/2025] Cliente: 5 donas\n"
    ))
    [order] = extraction.orders
    assert order.response_time_hours == 0
    assert extraction.response_samples == []


def test_response_time_needs_the_cue_phrase(extractor):
    extraction = extract(extractor, (
        "[7:00 AM, 3/7/2025] Panaderia Quilantan: buenos días\n"
        "[8:00 AM, 3/7/2025] Cliente: 5 donas\n"
    ))
    assert extraction.orders[0].response_time_hours == 0
    assert extraction.response_samples == []


def test_sentiment_counts_both_polarities(extractor):
    extraction = extract(extractor, "[8:00 AM, 3/7/2025] Cliente: gracias, pero llegó tarde")
    assert extraction.compliments == 1
    assert extraction.complaints == 1


def test_sentiment_matches_inside_words(extractor):
    extraction = extract(extractor, (
        "[8:00 AM, 3/7/2025] Cliente: buenos días, okey\n"
        "[8:00 AM, 3/8/2025] Cliente: buenas tardes\n"
        "[8:00 AM, 3/9/2025] Cliente: salió malo, mal, muy mal\n"
    ))
    assert extraction.compliments == 1
    assert extraction.complaints == 2


def test_payment_and_no_response_counters(extractor):
    extraction = extract(extractor, (
        "[8:00 AM, 3/7/2025] Cliente: mañana lo pago\n"
        "[8:00 AM, 3/8/2025] Cliente: hoy no\n"
        "[8:00 AM, 3/9/2025] Cliente: no gracias\n"
        "[8:00 AM, 3/10/2025] Cliente: no me llegó el pedido completo de ayer\n"
    ))
    assert extraction.payment_issues == 1
    assert extraction.no_response_days == 2
    assert extraction.message_count == 4
    assert extraction.orders == []


def test_exclusions_and_bakery_tags(extractor):
    extraction = extract(extractor, (
        "[8:00 AM, 3/7/2025] Cliente: 20 piezas sin pasas\n"
        "[8:10 AM, 3/7/2025] Panaderia Quilantan: Ya va a salir la camioneta\n"
    ))
    assert extraction.exclusions == ["pasas"]
    assert [t.kind for t in extraction.tags] == ["delivery_info"]
    assert extraction.tags[0].client == "Cliente"


def test_product_counts_accumulate_per_client(extractor):
    extraction = extract(extractor, (
        "[8:00 AM, 3/7/2025] Cliente: 2 donas\n"
        "[8:00 AM, 3/8/2025] Cliente: 3 donas y 1 pastelito\n"
    ))
    assert extraction.product_counts == {"donas": 5, "pastelitos": 1}
    assert len(extraction.orders) == 2


def test_order_categories(extractor):
    assorted = extractor.build_order(client_message("20 piezas surtidas"))
    specific = extractor.build_order(client_message("2 pastelitos 1 donas"))
    plain = extractor.build_order(client_message("15 piezas"))
    assert assorted.category == "general"
    assert specific.category == "specific"
    assert plain.category == "general"


def test_mixed_order_values_the_unnamed_pieces(extractor):
    order = extractor.build_order(client_message("20 piezas, que incluya 5 conchas"))
    assert order.category == "mixed"
    assert order.total_pieces == 20
    assert [(m.product, m.count) for m in order.products] == [("conchas blancas", 5)]
    assert order.assorted_pieces == 15
    assert order.estimated_value == 5 * 800 + 15 * 850


@pytest.mark.parametrize("content,pieces,package", [
    ("2 de 40", 80, "2 de 40"),
    ("2 de 40 pf por favor", 80, "2 de 40"),
    ("3 paquetes de 20", 60, "3 de 20"),
])
def test_package_orders(extractor, content, pieces, package):
    order = extractor.build_order(client_message(content))
    assert order.total_pieces == pieces
    assert order.package_format == package
    assert order.category == "general"
    assert order.estimated_value == pieces * 850


def test_changes_are_counted_on_every_message(extractor):
    extraction = extract(extractor, (
        "[8:00 AM, 3/7/2025] Cliente: 10 donas y 2 cambios\n"
        "[8:00 AM, 3/8/2025] Cliente: me manda tres cambios\n"
    ))
    assert extraction.changes == 5
    assert [o.changes for o in extraction.orders] == [2]


@pytest.mark.parametrize("content,destination", [
    ("20 piezas para la frutería Pepe", "frutería Pepe"),
    ("10 donas para Lupe frutería", "Lupe frutería"),
    ("10 donas para la tienda Centro", "tienda Centro"),
    ("10 donas para mañana", None),
])
def test_destinations(extractor, content, destination):
    assert extractor.build_order(client_message(content)).destination == destination


def test_sample_transcript_categories(extractor, sample_transcript):
    messages = parse_transcript(sample_transcript)
    lupita = extractor.extract("Abarrotes Lupita", [m for m in messages if m.sender == "Abarrotes Lupita"])
    beto = extractor.extract("Tienda Don Beto", [m for m in messages if m.sender == "Tienda Don Beto"])
    assert [o.category for o in lupita.orders] == ["specific", "specific"]
    assert [o.category for o in beto.orders] == ["general"]
