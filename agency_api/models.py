"""
agency_api/models.py — All Pydantic data schemas
Wire format is camelCase (what the React frontend sends and reads);
documents are stored with snake_case keys.
"""
from __future__ import annotations

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agency_api.utils.timezone import current_year, utc_now

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _validate_email(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return v
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please provide a valid email address")
    return v.lower()


def new_id() -> str:
    return uuid.uuid4().hex


# ──────────────────────────────────────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────────────────────────────────────

class FormType(str, Enum):
    GENERAL_INQUIRY = "contact"
    BUSINESS_PROFILE = "business-details"

    @classmethod
    def parse(cls, value: Any) -> "FormType":
        """Resolve a wire value. Absent means general inquiry; descriptive names are accepted too."""
        if value is None or value == "":
            return cls.GENERAL_INQUIRY
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in _FORM_TYPE_ALIASES:
            return _FORM_TYPE_ALIASES[text]
        return cls(text)


_FORM_TYPE_ALIASES = {
    "general-inquiry": FormType.GENERAL_INQUIRY,
    "business-profile": FormType.BUSINESS_PROFILE,
}


class ContactStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class SubmissionSource(str, Enum):
    WEBSITE = "website"
    API = "api"
    IMPORT = "import"


class PortfolioCategory(str, Enum):
    BRANDING = "branding"
    WEB_DESIGN = "web-design"
    VIDEO_PRODUCTION = "video-production"
    PHOTOGRAPHY = "photography"
    DIGITAL_MARKETING = "digital-marketing"
    MOBILE_APP = "mobile-app"
    GRAPHIC_DESIGN = "graphic-design"
    SOCIAL_MEDIA = "social-media"
    CONTENT_CREATION = "content-creation"
    OTHER = "other"


class PortfolioStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


# ──────────────────────────────────────────────────────────────────────────────
# Inbound submissions — one variant per form type
# ──────────────────────────────────────────────────────────────────────────────

class GeneralInquiry(CamelModel):
    """Contact form: the sender must be reachable and say something."""
    form_type: ClassVar[FormType] = FormType.GENERAL_INQUIRY

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=1, max_length=254)
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    phone: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)

    def text_fields(self) -> list[str]:
        return [self.message, self.subject, ""]


class BusinessProfile(CamelModel):
    """Business details form: only the company name is mandatory."""
    form_type: ClassVar[FormType] = FormType.BUSINESS_PROFILE

    company_name: str = Field(min_length=1, max_length=200)
    industry: Optional[str] = Field(default=None, max_length=100)
    services: Optional[str] = Field(default=None, max_length=2000)
    specialties: Optional[str] = Field(default=None, max_length=1000)
    projects: Optional[str] = Field(default=None, max_length=3000)
    achievements: Optional[str] = Field(default=None, max_length=2000)
    business_email: Optional[str] = Field(default=None, max_length=254)
    business_phone: Optional[str] = Field(default=None, max_length=20)
    instagram: Optional[str] = Field(default=None, max_length=100)
    linkedin: Optional[str] = Field(default=None, max_length=200)

    @field_validator("business_email")
    @classmethod
    def validate_business_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)

    def text_fields(self) -> list[str]:
        return ["", "", self.services or ""]


Submission = Union[GeneralInquiry, BusinessProfile]

SUBMISSION_MODELS: dict[FormType, type[CamelModel]] = {
    FormType.GENERAL_INQUIRY: GeneralInquiry,
    FormType.BUSINESS_PROFILE: BusinessProfile,
}


# ──────────────────────────────────────────────────────────────────────────────
# Stored contact document
# ──────────────────────────────────────────────────────────────────────────────

class Reply(CamelModel):
    message: str = Field(min_length=1, max_length=2000)
    sender: str = Field(alias="from", min_length=1, max_length=100)
    timestamp: datetime = Field(default_factory=utc_now)


class ContactRecord(CamelModel):
    id: str = Field(default_factory=new_id)
    form_type: FormType = FormType.GENERAL_INQUIRY

    # General inquiry
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None

    # Business profile
    company_name: Optional[str] = None
    industry: Optional[str] = None
    services: Optional[str] = None
    specialties: Optional[str] = None
    projects: Optional[str] = None
    achievements: Optional[str] = None
    business_email: Optional[str] = None
    business_phone: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None

    status: ContactStatus = ContactStatus.UNREAD

    # Metadata stamped at intake
    ip_address: str
    user_agent: str = ""
    source: SubmissionSource = SubmissionSource.WEBSITE

    # Set once at creation by the spam heuristic
    is_spam: bool = False
    spam_score: int = Field(default=0, ge=0, le=100)
    priority: Priority = Priority.NORMAL

    tags: list[str] = []
    replies: list[Reply] = []

    submitted_at: datetime = Field(default_factory=utc_now)
    last_read_at: Optional[datetime] = None
    replied_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def sender(self) -> Optional[str]:
        return self.email or self.business_email

    def to_public(self, include_meta: bool = True) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        data["replyCount"] = len(self.replies)
        if not include_meta:
            data.pop("ipAddress", None)
            data.pop("userAgent", None)
        return data


class StatusUpdate(BaseModel):
    status: ContactStatus


class ReplyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=2000)
    sender: str = Field(alias="from", min_length=1, max_length=100)


class SubmissionResponse(CamelModel):
    success: bool = True
    message: str
    contact_id: str


# ──────────────────────────────────────────────────────────────────────────────
# Portfolio
# ──────────────────────────────────────────────────────────────────────────────

def _check_year(v: int) -> int:
    latest = current_year() + 1
    if v < 2000 or v > latest:
        raise ValueError(f"year must be between 2000 and {latest}")
    return v


class PortfolioClient(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    industry: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=300)


class TeamMember(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    role: str = Field(min_length=1, max_length=100)
    avatar: Optional[str] = None


class GalleryItem(CamelModel):
    url: str = Field(min_length=1)
    caption: Optional[str] = Field(default=None, max_length=300)
    type: MediaType = MediaType.IMAGE


class PortfolioMedia(CamelModel):
    thumbnail: str = Field(min_length=1)
    video: Optional[str] = None
    gallery: list[GalleryItem] = []


class Award(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    organization: str = Field(min_length=1, max_length=200)
    year: int
    category: Optional[str] = Field(default=None, max_length=100)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        return _check_year(v)


class PortfolioMetrics(CamelModel):
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)


class SeoMeta(CamelModel):
    meta_title: Optional[str] = Field(default=None, max_length=60)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    keywords: list[str] = []

    @field_validator("keywords")
    @classmethod
    def lowercase_keywords(cls, v: list[str]) -> list[str]:
        return [k.strip().lower() for k in v if k.strip()]


class PortfolioItem(CamelModel):
    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1, max_length=200)
    slug: str = ""
    description: str = Field(min_length=1, max_length=1000)
    category: PortfolioCategory
    status: PortfolioStatus = PortfolioStatus.DRAFT

    year: int
    duration: Optional[str] = Field(default=None, max_length=50)
    client: PortfolioClient = Field(default_factory=PortfolioClient)
    team: list[TeamMember] = []
    media: PortfolioMedia

    tags: list[str] = []
    technologies: list[str] = []
    awards: list[Award] = []
    metrics: PortfolioMetrics = Field(default_factory=PortfolioMetrics)
    seo: SeoMeta = Field(default_factory=SeoMeta)

    featured: bool = False
    order: int = 0

    published_at: Optional[datetime] = None
    last_viewed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        return _check_year(v)

    @field_validator("category", mode="before")
    @classmethod
    def lowercase_category(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("slug")
    @classmethod
    def lowercase_slug(cls, v: str) -> str:
        return v.lower()

    @field_validator("tags")
    @classmethod
    def lowercase_tags(cls, v: list[str]) -> list[str]:
        cleaned = []
        for tag in v:
            tag = tag.strip().lower()
            if not tag:
                continue
            if len(tag) > 50:
                raise ValueError("Tag cannot exceed 50 characters")
            cleaned.append(tag)
        return cleaned

    @property
    def display_url(self) -> str:
        return f"/portfolio/{self.slug}"

    @property
    def category_display(self) -> str:
        return " ".join(w.capitalize() for w in self.category.value.split("-"))

    def to_public(self, include_metrics: bool = True) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        data["displayUrl"] = self.display_url
        data["categoryDisplay"] = self.category_display
        data["formattedYear"] = str(self.year)
        if not include_metrics:
            data.pop("metrics", None)
        return data


class PortfolioStatusUpdate(BaseModel):
    status: PortfolioStatus
