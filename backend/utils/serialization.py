"""
Serialization utilities for converting database rows to API schemas.

List and object columns of ``projects`` are stored as JSON text. Reading them back
never fails: malformed text degrades to an empty list (or None for ``price_info``).
"""

import json
from typing import Any, Dict, List, Optional
from core import schemas, models

PROJECT_LIST_FIELDS = ("configurations", "videos", "highlights", "amenities", "gallery")
PROJECT_JSON_FIELDS = PROJECT_LIST_FIELDS + ("price_info",)


def safe_parse(value: Any, fallback: Any = None) -> Any:
    """Parse JSON text, returning ``fallback`` when it is missing or malformed."""
    if value is None or value == "":
        return fallback
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return fallback


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _as_list(value: Any) -> List[Any]:
    parsed = safe_parse(value, [])
    return parsed if isinstance(parsed, list) else []


def project_columns(project: schemas.ProjectCreate, slug: str) -> Dict[str, Any]:
    """Column values for inserting or replacing a projects row."""
    data = project.model_dump(exclude={"slug"})
    data["slug"] = slug
    for field in PROJECT_JSON_FIELDS:
        data[field] = dump_json(data[field])
    return data


def to_project_schema(db_project: models.Project) -> schemas.Project:
    """Convert a projects row to the API schema with its JSON columns decoded."""
    return schemas.Project(
        id=db_project.id,
        slug=db_project.slug,
        title=db_project.title,
        location_area=db_project.location_area,
        city=db_project.city,
        address=db_project.address,
        rera=db_project.rera,
        status=db_project.status,
        property_type=db_project.property_type,
        configurations=_as_list(db_project.configurations),
        blocks=db_project.blocks,
        units=db_project.units,
        floors=db_project.floors,
        land_area=db_project.land_area,
        description=db_project.description,
        videos=[str(v) for v in _as_list(db_project.videos)],
        developer_name=db_project.developer_name,
        developer_logo=db_project.developer_logo,
        developer_description=db_project.developer_description,
        highlights=[str(v) for v in _as_list(db_project.highlights)],
        amenities=[str(v) for v in _as_list(db_project.amenities)],
        gallery=[str(v) for v in _as_list(db_project.gallery)],
        thumbnail=db_project.thumbnail,
        brochure_url=db_project.brochure_url,
        contact_phone=db_project.contact_phone,
        contact_email=db_project.contact_email,
        price_info=safe_parse(db_project.price_info, None),
        created_at=db_project.created_at,
        updated_at=db_project.updated_at,
    )


def to_testimonial_schema(db_testimonial: models.Testimonial) -> schemas.Testimonial:
    return schemas.Testimonial.model_validate(db_testimonial)


def enquiry_row_to_dict(row: Any, table: str) -> Dict[str, Any]:
    """Flatten a joined (enquiry, user) result row for the admin listing."""
    enquiry, user = row
    data = {c.name: getattr(enquiry, c.name) for c in enquiry.__table__.columns}
    data["enquiry_id"] = data.pop("id")
    data["name"] = user.name if user else None
    data["user_phone"] = user.phone if user else None
    data["user_email"] = user.email if user else None
    data["table"] = table
    return data
