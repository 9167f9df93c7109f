"""
Request builder: turns CLI scalars or a parameter input file into the ordered
list of user events the prediction runner works through.

The parameter input file is a UTF-8 JSON array. Each element is a Retail API
v2 ``UserEvent`` in either its protobuf JSON form (``eventType``,
``visitorId``, ``productDetails``...) or with snake_case field names::

    [
      {
        "eventType": "detail-page-view",
        "visitorId": "visitor-1",
        "productDetails": [{"product": {"id": "sku-123"}}]
      }
    ]

Every field of the Retail API schema is passed through; unknown fields are
ignored and no field is required. Element order is preserved, so requests go
out in file order.
"""
from __future__ import annotations

import pathlib
from typing import Any, Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from retail_predictions.errors import DecodeError, InputReadError, ValidationError
from retail_predictions.models.prediction import UserEventRecord
from retail_predictions.utils.logger import Logger

MIN_RESULTS = 1
MAX_RESULTS = 100

_EVENT_ARRAY = TypeAdapter(List[Dict[str, Any]])


class RequestBuilder:
    """Produces the ordered sequence of user events for one run."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def from_arguments(
        self,
        event_type: str,
        visitor_id: str,
        product_id: str,
        experiment_id: Optional[str] = None,
    ) -> List[UserEventRecord]:
        """Build exactly one user event from command line values."""
        missing = [
            name
            for name, value in (("event type", event_type), ("visitor id", visitor_id), ("product id", product_id))
            if not value or not value.strip()
        ]
        if missing:
            raise ValidationError(f"Missing required values: {', '.join(missing)}")

        record = UserEventRecord.from_fields(
            event_type,
            visitor_id,
            product_ids=[product_id],
            experiment_ids=[experiment_id] if experiment_id else [],
        )
        self.logger.debug("Built user event from arguments", event_type=event_type, visitor_id=visitor_id)
        return [record]

    def from_file(self, input_file: Union[str, pathlib.Path], page_size: int) -> List[UserEventRecord]:
        """Load every user event from the parameter input file, in file order."""
        if not str(input_file).strip():
            raise ValidationError("An input file is required")
        check_page_size(page_size)

        path = pathlib.Path(input_file).expanduser().resolve()
        self.logger.debug("Reading parameter input file", path=str(path))
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise InputReadError(f"Reading the Parameter Input File Failed: {exc}") from exc

        records = decode_user_events(raw)
        self.logger.info("Loaded user events", path=str(path), count=len(records))
        return records


def check_page_size(page_size: int) -> None:
    if not MIN_RESULTS <= page_size <= MAX_RESULTS:
        raise ValidationError(
            f"Number of results must be between {MIN_RESULTS} and {MAX_RESULTS}, got {page_size}"
        )


def decode_user_events(raw: Union[bytes, str]) -> List[UserEventRecord]:
    """Decode a JSON array of user event objects; anything else is a DecodeError."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Parsing the Parameter Input File Failed: not UTF-8 ({exc})") from exc
    try:
        elements = _EVENT_ARRAY.validate_json(raw)
    except PydanticValidationError as exc:
        raise DecodeError(f"Parsing the Parameter Input File Failed: {exc}") from exc
    return [UserEventRecord.from_dict(element) for element in elements]
