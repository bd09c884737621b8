import datetime as dt
import math
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from print_analytics.utils import costing
from print_analytics.utils.validators import validate_image

MAX_EMAIL_LENGTH = 100


class ApiModel(BaseModel):
    """Base for request bodies: camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra='ignore',
    )


# Enumerations
class JobStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"

class JobCategory(str, Enum):
    prototype = "prototype"
    production = "production"
    research = "research"
    maintenance = "maintenance"
    other = "other"

class FeedbackCategory(str, Enum):
    general = "general"
    technical = "technical"
    complaint = "complaint"
    suggestion = "suggestion"
    bug_report = "bug-report"

class FeedbackStatus(str, Enum):
    new = "new"
    in_review = "in-review"
    resolved = "resolved"
    closed = "closed"

class ProjectPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

class ProjectStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"
    on_hold = "on-hold"

class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


def _coerce_id(value: Any) -> Any:
    """Browser clients send numeric ids (Date.now()); store them as strings"""
    if isinstance(value, bool):
        raise ValueError('id must be a string or integer')
    if isinstance(value, (int, float)):
        return str(int(value))
    return value


# Job Models
class LocationQuantities(ApiModel):
    """Per-location produced quantities"""
    bng: int = Field(default=0, ge=0)
    sampling: int = Field(default=0, ge=0)
    rcc: int = Field(default=0, ge=0)
    rd: int = Field(default=0, ge=0)
    kaa: int = Field(default=0, ge=0)
    bom: int = Field(default=0, ge=0)
    other: int = Field(default=0, ge=0)

    @field_validator(*costing.LOCATION_FIELDS, mode='before')
    @classmethod
    def empty_counter_is_zero(cls, v):
        """Blank form inputs arrive as empty strings or null"""
        if v is None or v == '':
            return 0
        return v


class JobRequest(ApiModel):
    """Request model for creating or replacing a print job"""
    id: Optional[str] = Field(None, max_length=64, description="Client-generated id, kept when free")
    date: dt.date = Field(..., description="Production date")
    project_name: str = Field(..., min_length=1, max_length=100)
    part_type: str = Field(..., min_length=1, max_length=50)
    part_size: str = Field(..., min_length=1, max_length=50)
    part_name: str = Field(..., min_length=1, max_length=100)
    application: str = Field(..., min_length=1, max_length=200)
    sharepoint_link: Optional[str] = Field(None, max_length=500)
    material_used: str = Field(..., min_length=1, max_length=50)
    machine_name: str = Field(..., min_length=1, max_length=50)
    printing_time_mins: float = Field(..., ge=0, allow_inf_nan=False, description="Printing time in minutes")
    print_price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit print price")
    oem_cost: float = Field(..., ge=0, allow_inf_nan=False, description="Comparable outsourced cost per unit")
    status: JobStatus
    category: JobCategory
    quantities: LocationQuantities = Field(default_factory=LocationQuantities)
    image: Optional[str] = None

    # Derived on the server; accepted only so mismatches can be reported
    printing_time_hrs: Optional[float] = Field(None, allow_inf_nan=False)
    electricity_cost: Optional[float] = Field(None, allow_inf_nan=False)
    print_cost: Optional[float] = Field(None, allow_inf_nan=False)
    savings_per_product: Optional[float] = Field(None, allow_inf_nan=False)
    total_quantity: Optional[float] = Field(None, allow_inf_nan=False)
    total_savings: Optional[float] = Field(None, allow_inf_nan=False)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)

    @field_validator('quantities')
    @classmethod
    def validate_total_quantity(cls, v):
        """A job must produce at least one part across all locations"""
        if costing.total_quantity(v.model_dump()) < 1:
            raise ValueError('Total quantity across all locations must be at least 1')
        return v

    @field_validator('image')
    @classmethod
    def validate_image_field(cls, v):
        return validate_image(v)

    @model_validator(mode='after')
    def check_costs_are_finite(self):
        try:
            derived = costing.compute_job_costs(
                self.printing_time_mins, self.print_price, self.oem_cost, self.quantities.model_dump()
            )
        except OverflowError:
            raise ValueError('Cost figures must be finite numbers')
        if not all(math.isfinite(value) for value in derived.values()):
            raise ValueError('Cost figures must be finite numbers')
        return self

    def primitive_fields(self) -> Dict[str, Any]:
        """camelCase mapping of the trusted inputs"""
        return self.model_dump(
            by_alias=True,
            mode='json',
            exclude={
                'id', 'printing_time_hrs', 'electricity_cost', 'print_cost',
                'savings_per_product', 'total_quantity', 'total_savings',
            },
        )

    def submitted_derived_fields(self) -> Dict[str, Any]:
        return self.model_dump(
            by_alias=True,
            include={
                'printing_time_hrs', 'electricity_cost', 'print_cost',
                'savings_per_product', 'total_quantity', 'total_savings',
            },
        )


# Feedback Models
class FeedbackRequest(ApiModel):
    """Request model for submitting feedback"""
    id: Optional[str] = Field(None, max_length=64)
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., description="Contact address, stored lower-cased")
    part_name: Optional[str] = Field(None, max_length=100)
    location: str = Field(..., min_length=1, max_length=100)
    category: FeedbackCategory
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    image: Optional[str] = None
    status: FeedbackStatus = FeedbackStatus.new

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)

    @field_validator('email', mode='before')
    @classmethod
    def check_email_length(cls, v):
        if isinstance(v, str) and len(v) > MAX_EMAIL_LENGTH:
            raise ValueError(f'Email must be at most {MAX_EMAIL_LENGTH} characters')
        return v

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()

    @field_validator('image')
    @classmethod
    def validate_image_field(cls, v):
        return validate_image(v)

    def record_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode='json', exclude={'id'})


# Project Models
class ProjectRequest(ApiModel):
    """Request model for creating or replacing a needed project"""
    id: Optional[str] = Field(None, pattern=r'^\d{1,12}$', description="Zero-padded sequential id")
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    priority: ProjectPriority
    location: str = Field(..., min_length=1, max_length=100)
    due_date: dt.date
    assigned_to: Optional[str] = Field(None, max_length=100)
    tags: List[Annotated[str, Field(max_length=50)]] = Field(default_factory=list)
    image: Optional[str] = None
    status: ProjectStatus = ProjectStatus.pending

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)

    @field_validator('image')
    @classmethod
    def validate_image_field(cls, v):
        return validate_image(v)

    def record_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode='json', exclude={'id'})


# Settings Models
class SettingsUpdateRequest(BaseModel):
    """Partial settings mapping; each key is upserted independently"""
    settings: Dict[str, Any] = Field(..., description="Keys to upsert")


# Auth Models
class LoginRequest(BaseModel):
    password: Optional[str] = None
    action: Optional[str] = Field(None, max_length=50, description="UI action that requested the login")


RecordRequest = Union[JobRequest, FeedbackRequest, ProjectRequest]
