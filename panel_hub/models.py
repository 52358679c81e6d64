"""
Data and response models for the hub API.

Each endpoint has its own response model so the wire shape
({success, data|list|message}) is checked per route.
"""
from datetime import datetime, timedelta, timezone
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'

# Agents that never set a time send Go's zero value
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

# Accepted range for pushed timestamps
EARLIEST_SAMPLE_TIME = datetime(1970, 1, 1, tzinfo=timezone.utc)
MAX_CLOCK_SKEW = timedelta(days=1)

# Largest value the BIGINT and SQLite INTEGER columns hold
MAX_BIGINT = 2 ** 63 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Convert to an aware UTC datetime; naive values are taken as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in the one canonical form used on the wire and in SQLite"""
    value = as_utc(value)
    # %Y is not zero-padded below year 1000 on every platform
    return f"{value.year:04d}" + value.strftime(TIMESTAMP_FORMAT[2:])


def _validate_utc(value: datetime) -> datetime:
    try:
        return as_utc(value)
    except OverflowError:
        raise ValueError("timestamp out of range")


UTCDateTime = Annotated[
    datetime,
    AfterValidator(_validate_utc),
    PlainSerializer(format_timestamp, return_type=str, when_used='json'),
]


# Records
class User(BaseModel):
    id: int
    username: str


class Node(BaseModel):
    id: int
    name: str
    ip: str
    status: Literal['online', 'offline']
    last_seen: UTCDateTime


class MetricsSample(BaseModel):
    id: Optional[int] = None
    node_id: int
    cpu_percent: float = Field(ge=0, le=100)
    memory_total: int = Field(ge=0)
    memory_used: int = Field(ge=0)
    memory_percent: float = Field(ge=0, le=100)
    cpu_temp: float = 0.0
    timestamp: Optional[UTCDateTime] = None


# Requests
class MetricsPayload(BaseModel):
    """Body pushed by an agent; the node is resolved server-side"""
    model_config = ConfigDict(extra='ignore')

    cpu_percent: float = Field(default=0.0, ge=0, le=100, allow_inf_nan=False)
    memory_total: int = Field(default=0, ge=0, le=MAX_BIGINT)
    memory_used: int = Field(default=0, ge=0, le=MAX_BIGINT)
    memory_percent: float = Field(default=0.0, ge=0, le=100, allow_inf_nan=False)
    cpu_temp: float = Field(default=0.0, allow_inf_nan=False)
    timestamp: Optional[UTCDateTime] = None

    @field_validator('timestamp')
    @classmethod
    def check_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None or value <= _ZERO_TIME:
            return None
        if value < EARLIEST_SAMPLE_TIME:
            raise ValueError("timestamp before 1970")
        if value > utcnow() + MAX_CLOCK_SKEW:
            raise ValueError("timestamp too far in the future")
        return value

    def bind(self, node_id: int) -> MetricsSample:
        return MetricsSample(node_id=node_id, **self.model_dump())


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


# Responses
class ErrorResponse(BaseModel):
    success: Literal[False] = False
    message: str


class LoginData(BaseModel):
    token: str
    user: User


class LoginResponse(BaseModel):
    success: Literal[True] = True
    data: LoginData


class IngestResponse(BaseModel):
    success: Literal[True] = True
    message: str


class NodesResponse(BaseModel):
    success: Literal[True] = True
    data: List[Node]


class RealtimeResponse(BaseModel):
    success: Literal[True] = True
    data: MetricsSample


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    samples: List[MetricsSample] = Field(alias='list')
