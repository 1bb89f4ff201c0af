import pytest

from gasless_relay.helpers.errors import RelayError
from gasless_relay.helpers.gold_price import GoldPrice, extract_gold_price


@pytest.mark.parametrize(
    "payload",
    [
        0.1043,
        "0.1043",
        {"price": 0.1043},
        {"result": 0.1043},
        {"result": {"price": "0.1043"}},
        {"result": {"pricePerMg": 0.1043}},
        {"data": {"price": 0.1043}},
    ],
)
def test_extract_gold_price_shapes(payload):
    assert extract_gold_price(payload) == pytest.approx(0.1043)


def test_extract_gold_price_rejects_unknown_shape():
    with pytest.raises(RelayError):
        extract_gold_price({"quote": 1})
    with pytest.raises(RelayError):
        extract_gold_price(True)


def test_gold_price_views():
    price = GoldPrice(price_per_mg=0.1, fetched_at=0.0)
    assert price.price_per_gram == pytest.approx(100.0)
    assert price.price_per_ounce == pytest.approx(3110.35)
    assert price.formatted_price_per_mg == "$0.100000"
    assert price.formatted_price_per_gram == "$100.00"
    assert price.formatted_price_per_ounce == "$3110.35"
