"""Pydantic schemas for technology records, form input, imports and exports."""

from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from app.data.technologies import TechCategory, TechDifficulty, TechStatus

TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 50
DESCRIPTION_MIN_LENGTH = 10

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(value: Any) -> bool:
    """Return True if ``value`` is a string that parses as an absolute URL."""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        _url_adapter.validate_python(value.strip())
    except ValidationError:
        return False
    return True


def _validate_resources(resources: list[str]) -> list[str]:
    for index, resource in enumerate(resources):
        if not is_valid_url(resource):
            raise ValueError(f"resources[{index}] is not a valid URL: {resource!r}")
    return [resource.strip() for resource in resources]


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _drop_blank_resources(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [r for r in v if not (isinstance(r, str) and not r.strip())]
    return v


def _check_title(v: str) -> str:
    if len(v) < TITLE_MIN_LENGTH:
        raise ValueError(f"title must be at least {TITLE_MIN_LENGTH} characters")
    if len(v) > TITLE_MAX_LENGTH:
        raise ValueError(f"title must be at most {TITLE_MAX_LENGTH} characters")
    return v


def _check_description(v: str) -> str:
    if len(v) < DESCRIPTION_MIN_LENGTH:
        raise ValueError(f"description must be at least {DESCRIPTION_MIN_LENGTH} characters")
    return v


def _check_deadline(v: Optional[date]) -> Optional[date]:
    if v is not None and v < date.today():
        raise ValueError("deadline cannot be in the past")
    return v


class TechnologyRecord(BaseModel):
    """A tracked technology as held by the store and written to the durable slot.

    Records are frozen: every change produces a new record via model_copy.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Union[int, str]
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: TechStatus = TechStatus.not_started
    notes: str = ""
    category: Optional[TechCategory] = None
    difficulty: Optional[TechDifficulty] = None
    deadline: Optional[date] = None
    resources: tuple[str, ...] = ()
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: Union[int, str]) -> Union[int, str]:
        if isinstance(v, str) and not v.strip():
            raise ValueError("id must not be empty")
        return v

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_validate_resources(list(v)))

    def to_storage(self) -> dict[str, Any]:
        """JSON-ready mapping in the durable slot shape (optional fields omitted when unset)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TechnologyFields(BaseModel):
    """Fields a caller may supply when a new technology enters the store."""

    title: str
    description: str
    category: Optional[TechCategory] = None
    difficulty: Optional[TechDifficulty] = None
    deadline: Optional[date] = None
    resources: list[str] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("category", "difficulty", "deadline", mode="before")
    @classmethod
    def blank_is_unset(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("deadline")
    @classmethod
    def validate_deadline(cls, v: Optional[date]) -> Optional[date]:
        return _check_deadline(v)

    @field_validator("resources", mode="before")
    @classmethod
    def drop_blank_resources(cls, v: Any) -> Any:
        return _drop_blank_resources(v)

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, v: list[str]) -> list[str]:
        return _validate_resources(v)


class TechnologyCreate(TechnologyFields):
    """Form-path input: enforces title and description length limits."""

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _check_description(v)


class ImportCandidate(TechnologyFields):
    """Externally sourced definition.

    Candidate ids, statuses and unknown extra keys are ignored. A category or
    difficulty outside the tracker's enumerations is left unset instead of
    rejecting the whole candidate.
    """

    model_config = ConfigDict(extra="ignore")

    @field_validator("category", mode="before")
    @classmethod
    def unknown_category_is_unset(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if v is not None and (not isinstance(v, str) or v not in {c.value for c in TechCategory}):
            return None
        return v

    @field_validator("difficulty", mode="before")
    @classmethod
    def unknown_difficulty_is_unset(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if v is not None and (not isinstance(v, str) or v not in {d.value for d in TechDifficulty}):
            return None
        return v


class TechnologyUpdate(BaseModel):
    """Field edit of an existing record. Only the supplied fields change."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[TechCategory] = None
    difficulty: Optional[TechDifficulty] = None
    deadline: Optional[date] = None
    resources: Optional[list[str]] = None

    @field_validator("category", "difficulty", "deadline", mode="before")
    @classmethod
    def blank_is_unset(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("title cannot be removed")
        return _check_title(v.strip())

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("description cannot be removed")
        return _check_description(v.strip())

    @field_validator("deadline")
    @classmethod
    def validate_deadline(cls, v: Optional[date]) -> Optional[date]:
        return _check_deadline(v)

    @field_validator("resources", mode="before")
    @classmethod
    def drop_blank_resources(cls, v: Any) -> Any:
        return _drop_blank_resources(v)

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, v: Optional[list[str]]) -> list[str]:
        return _validate_resources(v or [])


class StatusUpdate(BaseModel):
    status: TechStatus


class NotesUpdate(BaseModel):
    notes: str


class StatusCounts(BaseModel):
    all: int
    not_started: int = Field(alias="not-started")
    in_progress: int = Field(alias="in-progress")
    completed: int

    model_config = ConfigDict(populate_by_name=True)


class ProgressResponse(BaseModel):
    progress: int
    counts: StatusCounts


class TechnologyListResponse(BaseModel):
    technologies: list[TechnologyRecord]
    counts: StatusCounts
    found: int


class MutationResponse(BaseModel):
    technology: Optional[TechnologyRecord] = None
    progress: int
    persistence_notice: Optional[str] = Field(default=None, alias="persistenceNotice")

    model_config = ConfigDict(populate_by_name=True)


class RandomPick(BaseModel):
    """Outcome of picking the next technology to study.

    ``picked`` is None when nothing was eligible; ``message`` is then meant
    for display to the user.
    """

    picked: Optional[TechnologyRecord] = None
    message: str


class ExportSnapshot(BaseModel):
    exported_at: datetime = Field(alias="exportedAt")
    technologies: list[TechnologyRecord]

    model_config = ConfigDict(populate_by_name=True)


class ImportFailure(BaseModel):
    index: int
    title: Optional[str] = None
    error: str


class ImportReport(BaseModel):
    imported: list[TechnologyRecord] = Field(default_factory=list)
    failed: list[ImportFailure] = Field(default_factory=list)


class ImportRequest(BaseModel):
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")

    model_config = ConfigDict(populate_by_name=True)
