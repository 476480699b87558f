from datetime import date

import pytest

from data.synthetic_records import Coordinate, SynthesisOptions


@pytest.fixture
def options():
    return SynthesisOptions(seed=42, reference_date=date(2025, 10, 4))


@pytest.fixture
def coord():
    return Coordinate(lat=37.335, lon=-122.03)
