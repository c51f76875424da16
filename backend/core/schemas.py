import re
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from typing import Any, List, Literal, Optional
from datetime import datetime

from utils.text import coerce_string_list, parse_configurations


def _text_or_none(v: Any) -> Optional[str]:
    """Blank -> None, numbers -> their plain string form, strings stripped."""
    if v is None:
        return None
    if isinstance(v, bool):
        return str(v).lower()
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    text = str(v).strip()
    return text or None


def _coerce_rating(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    match = re.match(r"^\s*([+-]?\d+)", str(v))
    if not match:
        return None
    rating = int(match.group(1))
    if rating < 1 or rating > 5:
        return None
    return rating


# Project schemas
class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    location_area: str = ""
    city: str = Field(..., min_length=1, max_length=255)
    address: str = ""
    rera: Optional[str] = None
    status: Optional[str] = None
    property_type: Optional[str] = None
    # Entries are stored as given: objects, strings or other JSON scalars
    configurations: List[Any] = []
    blocks: Optional[str] = None
    units: Optional[str] = None
    floors: Optional[str] = None
    land_area: Optional[str] = None
    description: Optional[str] = None
    videos: List[str] = []
    developer_name: Optional[str] = None
    developer_logo: Optional[str] = None
    developer_description: Optional[str] = None
    highlights: List[str] = []
    amenities: List[str] = []
    gallery: List[str] = []
    thumbnail: Optional[str] = None
    brochure_url: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    price_info: Optional[Any] = None

    @field_validator('title', 'city', mode='before')
    @classmethod
    def strip_required_text(cls, v):
        if v is None:
            return v
        return _text_or_none(v) or ""

    @field_validator('location_area', 'address', mode='before')
    @classmethod
    def blank_text(cls, v):
        return _text_or_none(v) or ""

    @field_validator(
        'slug', 'rera', 'status', 'property_type', 'blocks', 'units', 'floors', 'land_area',
        'description', 'developer_name', 'developer_logo', 'developer_description',
        'thumbnail', 'brochure_url', 'contact_phone', 'contact_email',
        mode='before',
    )
    @classmethod
    def optional_text(cls, v):
        return _text_or_none(v)

    @field_validator('videos', 'highlights', 'amenities', 'gallery', mode='before')
    @classmethod
    def string_list(cls, v):
        return coerce_string_list(v)

    @field_validator('configurations', mode='before')
    @classmethod
    def configuration_list(cls, v):
        return parse_configurations(v)

    @field_validator('price_info', mode='before')
    @classmethod
    def blank_price_info(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def default_thumbnail(self):
        # First gallery image is the thumbnail unless one was given
        if not self.thumbnail and self.gallery:
            self.thumbnail = self.gallery[0]
        return self


class Project(BaseModel):
    id: int
    slug: str
    title: str
    location_area: Optional[str] = None
    city: str
    address: Optional[str] = None
    rera: Optional[str] = None
    status: Optional[str] = None
    property_type: Optional[str] = None
    configurations: List[Any] = []
    blocks: Optional[str] = None
    units: Optional[str] = None
    floors: Optional[str] = None
    land_area: Optional[str] = None
    description: Optional[str] = None
    videos: List[str] = []
    developer_name: Optional[str] = None
    developer_logo: Optional[str] = None
    developer_description: Optional[str] = None
    highlights: List[str] = []
    amenities: List[str] = []
    gallery: List[str] = []
    thumbnail: Optional[str] = None
    brochure_url: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    price_info: Optional[Any] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectList(BaseModel):
    items: List[Project]
    page: int
    limit: int


class ProjectCreated(BaseModel):
    id: int
    slug: str


class ProjectEnvelope(BaseModel):
    project: Project


# Import schemas
class ImportedItem(BaseModel):
    id: int
    slug: str
    title: str


class ImportRowError(BaseModel):
    row: int
    error: str
    title: Optional[str] = None


class ImportResult(BaseModel):
    imported: int = 0
    items: List[ImportedItem] = []
    errors: List[ImportRowError] = []


# Upload schemas
class UploadResponse(BaseModel):
    url: str
    uploaded: List[str]
    message: str


class ImportImagesResponse(BaseModel):
    uploaded: List[str]
    message: str


class TestimonialImageResponse(BaseModel):
    url: str
    path: str
    message: str


# User / admin schemas
class AuthUser(BaseModel):
    id: int
    uid: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    isAdmin: bool = False


class AuthResponse(BaseModel):
    success: bool = True
    user: AuthUser


class AdminCreate(BaseModel):
    phone: str = Field(..., min_length=1)
    name: Optional[str] = None

    @field_validator('phone', 'name', mode='before')
    @classmethod
    def strip_text(cls, v):
        return _text_or_none(v)


class AdminUpdate(BaseModel):
    phone: Optional[str] = None
    name: Optional[str] = None


class Admin(BaseModel):
    id: int
    name: Optional[str] = None
    phone: str
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }


class AdminList(BaseModel):
    items: List[Admin]


class AdminEnvelope(BaseModel):
    admin: Admin


# Enquiry schemas
class _EnquiryFields(BaseModel):
    @field_validator('*', mode='before')
    @classmethod
    def text_fields(cls, v, info):
        if info.field_name == 'user_id':
            return v
        return _text_or_none(v)


class HomeEnquiryCreate(_EnquiryFields):
    user_id: int
    email: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, validation_alias=AliasChoices('type', 'bhk_type'))
    city: Optional[str] = None
    bathroom_number: Optional[str] = None
    kitchen_type: Optional[str] = None
    material: Optional[str] = None
    area: Optional[str] = None
    theme: Optional[str] = None


class CustomEnquiryCreate(_EnquiryFields):
    user_id: int
    type: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    message: Optional[str] = Field(None, validation_alias=AliasChoices('message', 'custom_message'))


class KbEnquiryCreate(_EnquiryFields):
    user_id: int
    type: Literal['bathroom', 'kitchen']
    email: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    bathroom_type: Optional[str] = None
    kitchen_type: Optional[str] = None
    kitchen_theme: Optional[str] = None


class HomeEnquiryUpdate(_EnquiryFields):
    user_id: Optional[int] = None
    email: Optional[str] = None
    city: Optional[str] = None
    type: Optional[str] = None
    bathroom_number: Optional[str] = None
    kitchen_type: Optional[str] = None
    material: Optional[str] = None
    area: Optional[str] = None
    theme: Optional[str] = None


class CustomEnquiryUpdate(_EnquiryFields):
    user_id: Optional[int] = None
    email: Optional[str] = None
    type: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    message: Optional[str] = None


class KbEnquiryUpdate(_EnquiryFields):
    user_id: Optional[int] = None
    email: Optional[str] = None
    type: Optional[Literal['bathroom', 'kitchen']] = None
    city: Optional[str] = None
    area: Optional[str] = None
    bathroom_type: Optional[str] = None
    kitchen_type: Optional[str] = None
    kitchen_theme: Optional[str] = None


class EnquiryCreated(BaseModel):
    id: int
    message: str


# Testimonial schemas
class TestimonialCreate(BaseModel):
    name: str = Field(..., min_length=1)
    review: str = Field(..., min_length=1)
    customer_type: Optional[str] = None
    customer_image: Optional[str] = None
    customer_phone: Optional[str] = None
    service_type: Optional[str] = None
    rating: Optional[int] = None

    @field_validator('name', 'review', mode='before')
    @classmethod
    def strip_required_text(cls, v):
        if v is None:
            return v
        return _text_or_none(v) or ""

    @field_validator('customer_type', 'customer_image', 'customer_phone', 'service_type', mode='before')
    @classmethod
    def optional_text(cls, v):
        return _text_or_none(v)

    @field_validator('rating', mode='before')
    @classmethod
    def rating_in_range(cls, v):
        return _coerce_rating(v)


class TestimonialUpdate(BaseModel):
    name: Optional[str] = None
    review: Optional[str] = None
    customer_type: Optional[str] = None
    customer_image: Optional[str] = None
    customer_phone: Optional[str] = None
    service_type: Optional[str] = None
    rating: Optional[int] = None
    is_home: Optional[bool] = Field(None, validation_alias=AliasChoices('isHome', 'is_home'))
    page: Optional[str] = None

    @field_validator('name', 'review', 'customer_type', 'customer_image', 'customer_phone',
                     'service_type', 'page', mode='before')
    @classmethod
    def optional_text(cls, v):
        return _text_or_none(v)

    @field_validator('rating', mode='before')
    @classmethod
    def rating_in_range(cls, v):
        return _coerce_rating(v)


class Testimonial(BaseModel):
    id: int
    name: str
    review: str
    customer_type: Optional[str] = None
    customer_image: Optional[str] = None
    customer_phone: Optional[str] = None
    service_type: Optional[str] = None
    rating: Optional[int] = None
    is_home: bool = Field(False, serialization_alias='isHome')
    page: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }


class TestimonialList(BaseModel):
    items: List[Testimonial]
    page: int
    limit: int


class TestimonialEnvelope(BaseModel):
    testimonial: Testimonial
