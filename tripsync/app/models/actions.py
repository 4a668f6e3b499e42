"""AI action models - the closed set of instructions the assistant may emit.

The AI layer returns loosely-typed JSON. Everything that reaches the ordering
engine goes through ``parse_actions`` first: unknown or malformed items are
coerced to ``NoAction`` at this boundary and never raise.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """Action discriminator values."""

    ADD_DESTINATIONS = "ADD_DESTINATIONS"
    REMOVE_DESTINATIONS = "REMOVE_DESTINATIONS"
    MOVE_DESTINATION = "MOVE_DESTINATION"
    REORDER_DESTINATIONS = "REORDER_DESTINATIONS"
    MODIFY_TRIP = "MODIFY_TRIP"
    UPDATE_TRIP_INFO = "UPDATE_TRIP_INFO"
    RECOMMEND_PLACES = "RECOMMEND_PLACES"
    ASK_PERSONAL_INFO = "ASK_PERSONAL_INFO"
    NO_ACTION = "NO_ACTION"


# Execution order within one AI turn; kinds not listed sort last.
ACTION_PRIORITY: dict[ActionKind, int] = {
    ActionKind.MODIFY_TRIP: 0,
    ActionKind.UPDATE_TRIP_INFO: 1,
    ActionKind.REMOVE_DESTINATIONS: 2,
    ActionKind.ADD_DESTINATIONS: 3,
    ActionKind.REORDER_DESTINATIONS: 4,
    ActionKind.MOVE_DESTINATION: 5,
}
UNRANKED_PRIORITY = len(ACTION_PRIORITY)

ADVISORY_KINDS = frozenset(
    {ActionKind.RECOMMEND_PLACES, ActionKind.ASK_PERSONAL_INFO, ActionKind.NO_ACTION}
)


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.action)  # type: ignore[attr-defined]

    @property
    def priority(self) -> int:
        return ACTION_PRIORITY.get(self.kind, UNRANKED_PRIORITY)


class DestinationDescriptor(BaseModel):
    """Bare destination as emitted by the AI layer."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    # Out-of-range days are clamped later, not rejected here.
    day: int | None = None
    hint_address: str | None = Field(
        None, validation_alias=AliasChoices("hint_address", "hintAddress")
    )
    min_hours: float | None = Field(None, validation_alias=AliasChoices("min_hours", "minHours"))
    place_type: str | None = None
    description: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Reject whitespace-only names."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class AddDestinations(_ActionBase):
    """Add a batch of destinations."""

    action: Literal["ADD_DESTINATIONS"] = "ADD_DESTINATIONS"
    destinations: list[DestinationDescriptor] = Field(..., min_length=1)
    day: int | None = None
    location_context: str | None = None


class RemoveDestinations(_ActionBase):
    """Remove destinations by name."""

    action: Literal["REMOVE_DESTINATIONS"] = "REMOVE_DESTINATIONS"
    destination_names: list[str] | None = None
    # Fallbacks used when destination_names is absent
    destinations: list[dict[str, Any]] | None = None
    context: str | None = None


class DestinationOrder(BaseModel):
    """One (name, day, position) triple of an explicit ordering."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    day: int
    position: int = Field(
        ..., ge=1, validation_alias=AliasChoices("position", "order_index")
    )


class ReorderDestinations(_ActionBase):
    """Apply an explicit ordering."""

    action: Literal["REORDER_DESTINATIONS"] = "REORDER_DESTINATIONS"
    destination_order: list[DestinationOrder] = Field(..., min_length=1)


class MoveDestination(_ActionBase):
    """Move one destination to another day and/or position."""

    action: Literal["MOVE_DESTINATION"] = "MOVE_DESTINATION"
    destination_name: str = Field(..., min_length=1)
    target_day: int
    target_position: int | None = Field(None, ge=1)


class TripModification(BaseModel):
    """Payload of MODIFY_TRIP."""

    model_config = ConfigDict(extra="ignore")

    new_total_days: int | None = Field(None, ge=1)
    extend_to_province: str | None = None
    modification_type: Literal["ADD_DAYS", "REMOVE_DAYS", "CHANGE_DATES"] | None = None
    target_day: int | None = Field(None, ge=1)


class ModifyTrip(_ActionBase):
    """Change trip duration and/or set the target day for following ADDs."""

    action: Literal["MODIFY_TRIP"] = "MODIFY_TRIP"
    trip_modification: TripModification


class UpdateTripInfo(_ActionBase):
    """Update trip dates and budget."""

    action: Literal["UPDATE_TRIP_INFO"] = "UPDATE_TRIP_INFO"
    days: int | None = Field(None, ge=1)
    start_date: date | None = None
    budget_min: float | None = None
    budget_max: float | None = None


class Recommendation(BaseModel):
    """A single advisory place suggestion."""

    model_config = ConfigDict(extra="ignore")

    name: str
    type: str | None = None
    description: str | None = None


class RecommendPlaces(_ActionBase):
    """Advisory only."""

    action: Literal["RECOMMEND_PLACES"] = "RECOMMEND_PLACES"
    location_context: str | None = None
    place_types: list[str] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)


class AskPersonalInfo(_ActionBase):
    """Advisory only."""

    action: Literal["ASK_PERSONAL_INFO"] = "ASK_PERSONAL_INFO"
    personal_info: dict[str, Any] | None = None


class NoAction(_ActionBase):
    """Nothing to do."""

    action: Literal["NO_ACTION"] = "NO_ACTION"


TripAction = Annotated[
    AddDestinations
    | RemoveDestinations
    | ReorderDestinations
    | MoveDestination
    | ModifyTrip
    | UpdateTripInfo
    | RecommendPlaces
    | AskPersonalInfo
    | NoAction,
    Field(discriminator="action"),
]

_trip_action_adapter: TypeAdapter[TripAction] = TypeAdapter(TripAction)


def parse_action(raw: Any) -> TripAction:
    """Validate a single raw action, coercing anything unusable to NoAction."""
    if isinstance(raw, _ActionBase):
        return raw  # type: ignore[return-value]

    if not isinstance(raw, dict):
        logger.warning("Ignoring non-object action payload: %r", type(raw).__name__)
        return NoAction()

    kind = raw.get("action")
    if not isinstance(kind, str) or kind not in ActionKind.__members__:
        logger.warning("Unknown action kind %r treated as NO_ACTION", kind)
        return NoAction()

    try:
        return _trip_action_adapter.validate_python(raw)
    except ValidationError as e:
        logger.warning(
            "Malformed %s action treated as NO_ACTION",
            kind,
            extra={"structured": {"action": kind, "errors": e.error_count()}},
        )
        return NoAction()


def parse_actions(raw_actions: Iterable[Any] | None) -> list[TripAction]:
    """Validate a batch of raw actions at the AI boundary."""
    if raw_actions is None:
        return []
    return [parse_action(raw) for raw in raw_actions]


A = TypeVar("A", bound=_ActionBase)


def sort_by_priority(actions: Sequence[A]) -> list[A]:
    """Order actions by the fixed priority table, keeping input order for ties."""
    return [
        action
        for _, action in sorted(enumerate(actions), key=lambda pair: (pair[1].priority, pair[0]))
    ]


class TripActions(BaseModel):
    """One AI turn: reply text plus typed actions."""

    reply: str = ""
    actions: list[TripAction] = Field(default_factory=list)
    suggest_login: bool | None = None

    @field_validator("actions", mode="before")
    @classmethod
    def coerce_actions(cls, v: Any) -> list[TripAction]:
        """Coerce unknown or malformed actions to NoAction instead of failing."""
        if v is None:
            return []
        if not isinstance(v, list):
            logger.warning("Action batch is not a list; ignoring it")
            return []
        return parse_actions(v)
