import json
from pathlib import Path

import pytest


@pytest.fixture
def sample_period_dict() -> dict:
    return json.loads(Path("sample_period.json").read_text(encoding="utf-8"))
