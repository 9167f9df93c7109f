"""
Prediction runner: sends one Retail API ``Predict`` call per user event, in
order, and logs every result as it arrives.

Workflow for each user event:

1. Build a ``PredictRequest`` from the run's placement, page size and filter
   plus the user event itself.
2. Log the request (the full user event only at DEBUG) and call ``predict``.
3. When the run has a branch, look up each returned product id with its own
   ``ProductServiceClient`` to resolve the product title. Lookups are not
   cached; a product returned twice is looked up twice.
4. Log each result before moving on to the next user event.

The first failure aborts the run. Later user events are never sent and
nothing is retried: the client library's retry policy is disabled with
``retry=None``.
"""
from __future__ import annotations

from typing import Callable, List, Sequence

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import retail_v2

from retail_predictions.errors import RemoteCallError
from retail_predictions.models.prediction import (
    PredictionConfig,
    PredictionOutcome,
    PredictionResult,
    UserEventRecord,
)
from retail_predictions.utils.logger import Logger

ClientFactory = Callable[[], object]

REMOTE_ERRORS = (GoogleAPIError, GoogleAuthError)


def build_predict_request(config: PredictionConfig, user_event: UserEventRecord) -> retail_v2.PredictRequest:
    """Combine the run's placement and paging options with one user event."""
    return retail_v2.PredictRequest(
        placement=config.placement,
        user_event=user_event.to_proto(),
        page_size=config.page_size,
        filter=config.filter or "",
        validate_only=False,
    )


class PredictionService:
    """Runs prediction requests against the Retail API, strictly in sequence."""

    def __init__(
        self,
        config: PredictionConfig,
        logger: Logger,
        *,
        prediction_client_factory: ClientFactory = retail_v2.PredictionServiceClient,
        product_client_factory: ClientFactory = retail_v2.ProductServiceClient,
    ) -> None:
        self.config = config
        self.logger = logger
        self._prediction_client_factory = prediction_client_factory
        self._product_client_factory = product_client_factory

    def run(self, user_events: Sequence[UserEventRecord]) -> List[PredictionOutcome]:
        """Request predictions for every user event; abort on the first failure."""
        if not user_events:
            self.logger.info("No user events to process")
            return []

        self.logger.info("Establishing a Retail Prediction Client")
        try:
            client = self._prediction_client_factory()
        except REMOTE_ERRORS as exc:
            raise RemoteCallError(f"Failed Establishing a Retail Prediction Client: {exc}") from exc

        outcomes: List[PredictionOutcome] = []
        with client:
            for number, user_event in enumerate(user_events, start=1):
                outcomes.append(self._predict(client, number, user_event))

        total = sum(len(o.results) for o in outcomes)
        self.logger.info("Prediction Requests Completed", requests=len(outcomes), results=total)
        return outcomes

    def _predict(self, client, number: int, user_event: UserEventRecord) -> PredictionOutcome:
        request = build_predict_request(self.config, user_event)

        self.logger.info("Initiating Prediction Request", number=number)
        self.logger.debug("...", parameters=user_event.to_log())

        try:
            response = client.predict(request=request, retry=None)
        except REMOTE_ERRORS as exc:
            raise RemoteCallError(f"Prediction Request Failed: {exc}") from exc

        results: List[PredictionResult] = []
        for item in response.results:
            title = self.get_product_title(item.id) if self.config.resolves_titles else None
            result = PredictionResult(id=item.id, title=title)
            self.logger.info("...", results=result.model_dump(exclude_none=True))
            results.append(result)

        if not results:
            self.logger.warning("No results returned", number=number)
        return PredictionOutcome(number=number, user_event=user_event, results=results)

    def get_product_title(self, product_id: str) -> str:
        """Resolve a product id to its title using a dedicated product client."""
        name = self.config.product_name(product_id)
        self.logger.debug("Looking up product", name=name)
        try:
            with self._product_client_factory() as client:
                product = client.get_product(request=retail_v2.GetProductRequest(name=name), retry=None)
        except REMOTE_ERRORS as exc:
            raise RemoteCallError(f"Failed to Get Product Title: {exc}") from exc
        return product.title
