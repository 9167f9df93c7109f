import io
import json

import pytest
from google.cloud import retail_v2

from retail_predictions.models.prediction import PredictionConfig
from retail_predictions.utils.logger import Logger


class FakePredictionClient:
    def __init__(self, retail):
        self.retail = retail
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def predict(self, request, retry=None):
        self.retail.predict_requests.append(request)
        self.retail.retry_values.append(retry)
        outcome = self.retail.responses.pop(0) if self.retail.responses else []
        if isinstance(outcome, Exception):
            raise outcome
        return retail_v2.PredictResponse(
            results=[retail_v2.PredictResponse.PredictionResult(id=pid) for pid in outcome]
        )


class FakeProductClient:
    def __init__(self, retail):
        self.retail = retail
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def get_product(self, request, retry=None):
        self.retail.product_requests.append(request.name)
        if self.retail.product_error is not None:
            raise self.retail.product_error
        product_id = request.name.rsplit("/", 1)[-1]
        return retail_v2.Product(name=request.name, title=self.retail.titles.get(product_id, f"Title {product_id}"))


class FakeRetail:
    """Records every call made through the fake Retail API clients."""

    def __init__(self):
        self.responses = []
        self.titles = {}
        self.product_error = None
        self.predict_requests = []
        self.product_requests = []
        self.retry_values = []
        self.prediction_clients = []
        self.product_clients = []

    def prediction_client(self):
        client = FakePredictionClient(self)
        self.prediction_clients.append(client)
        return client

    def product_client(self):
        client = FakeProductClient(self)
        self.product_clients.append(client)
        return client

    def service_options(self):
        return {
            "prediction_client_factory": self.prediction_client,
            "product_client_factory": self.product_client,
        }


@pytest.fixture
def retail():
    return FakeRetail()


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return Logger("test", verbose=True, stream=log_stream)


@pytest.fixture
def config():
    return PredictionConfig(project="123", serving_config="recently_viewed_default", page_size=5, branch="0")


@pytest.fixture
def write_events(tmp_path):
    def _write(events, name="events.json"):
        path = tmp_path / name
        path.write_text(json.dumps(events), encoding="utf-8")
        return path
    return _write
