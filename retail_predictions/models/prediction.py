from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from google.cloud import retail_v2
from google.protobuf import json_format
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from retail_predictions.errors import DecodeError, ValidationError


class UserEventRecord(BaseModel):
    """One unit of work: a Retail API user event to predict for.

    The event is kept as the client library's own ``UserEvent`` message, so
    every field in the API schema travels with the request unchanged.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    event: retail_v2.UserEvent

    @classmethod
    def from_fields(
        cls,
        event_type: str,
        visitor_id: str,
        product_ids: Iterable[str] = (),
        experiment_ids: Iterable[str] = (),
    ) -> "UserEventRecord":
        return cls(event=retail_v2.UserEvent(
            event_type=event_type,
            visitor_id=visitor_id,
            product_details=[{"product": {"id": pid}} for pid in product_ids],
            experiment_ids=list(experiment_ids),
        ))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserEventRecord":
        """Parse one user event in protobuf JSON form (camelCase or snake_case names).

        Fields the API does not define are ignored; nothing else is checked.
        """
        try:
            event = retail_v2.UserEvent.from_json(json.dumps(data), ignore_unknown_fields=True)
        except json_format.ParseError as exc:
            raise DecodeError(f"Parsing the Parameter Input File Failed: {exc}") from exc
        return cls(event=event)

    @property
    def event_type(self) -> str:
        return self.event.event_type

    @property
    def visitor_id(self) -> str:
        return self.event.visitor_id

    def to_proto(self) -> retail_v2.UserEvent:
        return self.event

    def to_log(self) -> dict:
        """Canonical JSON rendering, as sent to the API."""
        return json_format.MessageToDict(retail_v2.UserEvent.pb(self.event))


class PredictionConfig(BaseModel):
    """Placement coordinates and paging options for one run."""
    model_config = ConfigDict(frozen=True)

    project: str
    location: str = "global"
    catalog: str = "default_catalog"
    branch: Optional[str] = None
    serving_config: str
    page_size: int = 10
    filter: Optional[str] = None
    experiment: Optional[str] = None

    @field_validator("project", "location", "catalog", "serving_config")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("branch")
    @classmethod
    def _branch_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must not be empty when given")
        return value

    @classmethod
    def from_arguments(cls, **fields) -> "PredictionConfig":
        """Build a config, reporting bad fields as a ValidationError."""
        try:
            return cls(**fields)
        except PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ValidationError(f"Invalid arguments: {problems}") from exc

    @property
    def placement(self) -> str:
        return (
            f"projects/{self.project}/locations/{self.location}"
            f"/catalogs/{self.catalog}/servingConfigs/{self.serving_config}"
        )

    @property
    def resolves_titles(self) -> bool:
        return self.branch is not None

    def product_name(self, product_id: str) -> str:
        return (
            f"projects/{self.project}/locations/{self.location}"
            f"/catalogs/{self.catalog}/branches/{self.branch}/products/{product_id}"
        )


class PredictionResult(BaseModel):
    id: str
    title: Optional[str] = None


class PredictionOutcome(BaseModel):
    number: int
    user_event: UserEventRecord
    results: List[PredictionResult] = Field(default_factory=list)
