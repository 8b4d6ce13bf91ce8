"""Data models for contactbridge."""

from typing import Any, Callable, Literal

from pydantic import BaseModel, Field

# Contact identifiers are opaque: the platform issues strings, external
# systems frequently use integers.
Identifier = str | int

# An untyped contact in either schema. Its meaningful keys are defined by the
# active mapping list only.
ContactRecord = dict[str, Any]

Side = Literal["platform", "external"]


class FieldSpec(BaseModel):
    """One side of a field mapping.

    ``transform`` converts a raw value coming from the *other* system into
    this side's representation.
    """

    name: str
    type: str | None = None
    transform: Callable[[Any], Any] | None = None


class FieldMapping(BaseModel):
    """Pairs a platform field with its external counterpart."""

    platform: FieldSpec
    external: FieldSpec

    def side(self, side: Side) -> FieldSpec:
        return self.platform if side == "platform" else self.external


class SyncResult(BaseModel):
    """Outcome of a single-contact operation."""

    success: bool
    id: Identifier | None = None
    error: Any = None


class BulkResult(BaseModel):
    """Outcome of a multi-contact operation.

    ``success`` is true only if every constituent operation succeeded;
    ``error`` keeps one entry per failure.
    """

    success: bool = True
    error: list[Any] = Field(default_factory=list)

    @classmethod
    def aggregate(cls, results: list["BulkResult"]) -> "BulkResult":
        """Fold a list of results in order, keeping every error."""
        total = cls()
        for result in results:
            total.success = total.success and result.success
            total.error.extend(result.error)
        return total

    def add_error(self, error: Any) -> None:
        self.success = False
        self.error.append(error)


class BulkCreateResult(BaseModel):
    """Platform response to a bulk contact creation.

    ``contacts[i]`` is the outcome for the i-th submitted record.
    """

    success: bool
    contacts: list[SyncResult] = Field(default_factory=list)
    error: Any = None


class ContactPage(BaseModel):
    """One page of contacts listed from the external system."""

    success: bool = True
    contacts: list[ContactRecord] = Field(default_factory=list)
    error: Any = None


class PropertyDefinition(BaseModel):
    """A contact property to create on the platform."""

    name: str
    type: str = "text"


class EventAuth(BaseModel):
    """Credentials attached to a platform event."""

    token: str
    client: str | None = None


class EventPayload(BaseModel):
    """A platform event as delivered by the transport."""

    auth: EventAuth
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def scope(self) -> str:
        return self.auth.token


class EventResponse(BaseModel):
    """What an event handler hands back to the transport."""

    data: Any = None
    type: Literal["data"] = "data"
