from __future__ import annotations

import pytest

from smartstay.client.destinations import DEFAULT_COUNTRY, city_country_code


@pytest.mark.parametrize(
    "city,code",
    [
        ("Mumbai", "IN"),
        ("  LONDON ", "GB"),
        ("Mumbai, Maharashtra", "IN"),
        ("Venice Lido", "IT"),
        ("New Delhi", "IN"),
        ("Kuala Lumpur", "MY"),
    ],
)
def test_known_cities(city, code) -> None:
    assert city_country_code(city) == code


def test_unknown_city_falls_back_to_default() -> None:
    assert city_country_code("Atlantis") == DEFAULT_COUNTRY


def test_empty_city_has_no_code() -> None:
    assert city_country_code("") is None
    assert city_country_code(None) is None
