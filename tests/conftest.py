from __future__ import annotations

import json
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def audit_result() -> dict:
    return json.loads((FIXTURES / "audit_result.json").read_text(encoding="utf-8"))


@pytest.fixture
def brand() -> dict:
    return {
        "agencyName": "Acme Digital",
        "agencyLogo": None,
        "agencyUrl": "https://acme.example",
        "accentColor": "#8766FF",
        "reportFooter": "Confidential report",
        "preparedBy": "Jane Analyst",
        "clientName": "Client Co",
    }
