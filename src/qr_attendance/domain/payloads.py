"""Wire models shared by the API client and the reference server."""

from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class WireModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        """Dump with camelCase keys and JSON-safe values."""
        return self.model_dump(by_alias=True, mode="json")


class IssuedSession(WireModel):
    """Response of the issue-session endpoint."""

    token: str
    expires_in_minutes: int | None = Field(default=None, alias="expiresInMinutes")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class SessionListing(WireModel):
    """A session as returned by the list-sessions endpoint."""

    token: str = Field(
        validation_alias=AliasChoices("sessionToken", "token"),
        serialization_alias="sessionToken",
    )
    title: str = Field(alias="sessionName")
    scope: str = Field(alias="section")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")

    @field_validator("created_at", "expires_at")
    @classmethod
    def _normalize_times(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class CheckInRecordPayload(WireModel):
    """A check-in row for a single session."""

    user_id: str = Field(alias="userId")
    check_in_time: datetime | None = Field(default=None, alias="checkInTime")

    @field_validator("check_in_time")
    @classmethod
    def _normalize_time(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class CheckInLogEntry(WireModel):
    """A check-in row flattened with its session details."""

    session_token: str = Field(alias="sessionToken")
    session_name: str = Field(alias="sessionName")
    user_id: str = Field(alias="userId")
    check_in_time: datetime | None = Field(default=None, alias="checkInTime")

    @field_validator("check_in_time")
    @classmethod
    def _normalize_time(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class CheckInRequest(WireModel):
    """Body of a check-in submission."""

    token: str


class SessionSummary(WireModel):
    """Subject details returned alongside a successful check-in."""

    subject: str
    topic: str | None = None


class CheckInReceipt(WireModel):
    """Body of a check-in response."""

    message: str = "Attendance recorded successfully!"
    session: SessionSummary | None = None
