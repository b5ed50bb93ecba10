import json

import pytest

SAMPLE_TRANSCRIPT = """\
[7:00 AM, 3/3/2025] Panaderia Quilantan: Buenos días, ¿cuántas piezas le enviamos?
[8:00 AM, 3/3/2025] Abarrotes Lupita: 2 pastelitos 1 donas
[8:05 AM, 3/3/2025] Panaderia Quilantan: Perfecto, ya va a salir la camioneta
[9:30 AM, 3/3/2025] Tienda Don Beto: 20 piezas surtidas
[9:45 AM, 3/3/2025] Panaderia Quilantan: Gracias
[7:10 AM, 3/10/2025] Abarrotes Lupita: 10 conchas por $12,000 gracias
[7:20 AM, 3/10/2025] Tienda Don Beto: hoy no
esta línea es continuación y se ignora
"""

VALID_PROFILE = {
    "insights": ["Cliente constante"],
    "recommendations": ["Ofrecer pedido semanal"],
    "risk_level": "medium",
    "behavior_profile": "Pide por la mañana",
    "communication_style": "Breve",
    "business_value": "Alto valor",
    "predicted_actions": ["Seguirá pidiendo"],
    "satisfaction_analysis": "Satisfecho",
}


class FakeAPI:
    """Stand-in for APIClient that replays canned responses."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response if response is not None else json.dumps(VALID_PROFILE)
        self.error = error
        self.calls = 0

    async def call(self, prompt, max_tokens=1200, semaphore=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def sample_transcript() -> str:
    return SAMPLE_TRANSCRIPT


@pytest.fixture
def fake_api():
    return FakeAPI


@pytest.fixture
def valid_profile() -> dict:
    return dict(VALID_PROFILE)
