import pytest

from retail_predictions.errors import DecodeError, InputReadError, ValidationError
from retail_predictions.models.prediction import PredictionConfig
from retail_predictions.services.prediction import build_predict_request
from retail_predictions.services.requests import RequestBuilder, decode_user_events


@pytest.fixture
def builder(logger):
    return RequestBuilder(logger)


def test_single_event_from_arguments(builder):
    config = PredictionConfig(project="123", serving_config="sc", page_size=10)
    records = builder.from_arguments("purchase-complete", "v1", "p1")

    assert len(records) == 1
    request = build_predict_request(config, records[0])
    assert request.user_event.event_type == "purchase-complete"
    assert request.user_event.visitor_id == "v1"
    assert [d.product.id for d in request.user_event.product_details] == ["p1"]
    assert list(request.user_event.experiment_ids) == []


def test_single_event_with_experiment(builder):
    (record,) = builder.from_arguments("purchase-complete", "v1", "p1", experiment_id="group-b")
    assert list(record.to_proto().experiment_ids) == ["group-b"]


@pytest.mark.parametrize(
    "event_type,visitor_id,product_id",
    [("", "v1", "p1"), ("purchase-complete", "", "p1"), ("purchase-complete", "v1", " ")],
)
def test_single_event_requires_values(builder, event_type, visitor_id, product_id):
    with pytest.raises(ValidationError):
        builder.from_arguments(event_type, visitor_id, product_id)


def test_file_order_is_preserved(builder, write_events):
    path = write_events([
        {"eventType": "detail-page-view", "visitorId": f"v{i}", "productDetails": [{"product": {"id": f"p{i}"}}]}
        for i in range(5)
    ])
    records = builder.from_file(path, 5)
    assert [r.visitor_id for r in records] == ["v0", "v1", "v2", "v3", "v4"]


def test_empty_array_yields_no_events(builder, write_events):
    assert builder.from_file(write_events([]), 5) == []


def test_invalid_json_is_a_decode_error(builder, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text('[{"eventType": ', encoding="utf-8")
    with pytest.raises(DecodeError):
        builder.from_file(path, 5)


@pytest.mark.parametrize(
    "payload",
    [
        b'{"eventType": "detail-page-view", "visitorId": "v1"}',
        b'["not-an-event"]',
        b'[{"eventType": "x", "visitorId": "v1", "productDetails": "p1"}]',
    ],
)
def test_wrong_shape_is_a_decode_error(payload):
    with pytest.raises(DecodeError):
        decode_user_events(payload)


def test_partial_event_is_sent_as_given(builder, write_events):
    config = PredictionConfig(project="123", serving_config="sc")
    (record,) = builder.from_file(write_events([{"eventType": "home-page-view"}]), 5)

    request = build_predict_request(config, record)
    assert request.user_event.event_type == "home-page-view"
    assert request.user_event.visitor_id == ""


def test_purchase_fields_reach_the_request(builder, write_events):
    config = PredictionConfig(project="123", serving_config="sc")
    path = write_events([{
        "eventType": "purchase-complete",
        "visitorId": "v1",
        "cartId": "c9",
        "purchaseTransaction": {"id": "t1", "revenue": 12.5, "currencyCode": "USD"},
        "productDetails": [{"product": {"id": "p1"}, "quantity": 2}],
    }])
    (record,) = builder.from_file(path, 5)

    event = build_predict_request(config, record).user_event
    assert event.cart_id == "c9"
    assert event.purchase_transaction.id == "t1"
    assert event.purchase_transaction.revenue == 12.5
    assert event.purchase_transaction.currency_code == "USD"
    assert event.product_details[0].quantity == 2


def test_non_utf8_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_user_events(b"\xff\xfe[]")


def test_missing_file_is_a_read_error(builder, tmp_path):
    with pytest.raises(InputReadError):
        builder.from_file(tmp_path / "missing.json", 5)


@pytest.mark.parametrize("page_size", [0, -1, 101])
def test_page_size_is_checked_before_reading(builder, tmp_path, page_size):
    # The file does not exist; a ValidationError proves nothing was read.
    with pytest.raises(ValidationError):
        builder.from_file(tmp_path / "missing.json", page_size)


@pytest.mark.parametrize("page_size", [1, 100])
def test_page_size_bounds_are_inclusive(builder, write_events, page_size):
    assert builder.from_file(write_events([]), page_size) == []


def test_empty_path_is_rejected(builder):
    with pytest.raises(ValidationError):
        builder.from_file("", 5)
