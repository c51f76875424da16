from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import utils.crud as crud
from core import models, schemas
from core.config import Settings
from core.database import get_db
from core.errors import BadRequestError, NotFoundError
from utils.dependencies import get_current_admin, get_settings
from utils.serialization import to_testimonial_schema

router = APIRouter(
    prefix="/api/testimonials",
    tags=["Testimonials"],
)


@router.get("", response_model=schemas.TestimonialList)
async def list_testimonials(
    service_type: Optional[str] = None,
    rating: Optional[int] = None,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    page = max(1, page)
    limit = limit if limit is not None else app_settings.TESTIMONIALS_PAGE_SIZE
    limit = min(max(1, limit), app_settings.MAX_PAGE_SIZE)
    rows = await crud.list_testimonials(
        db,
        service_type=service_type,
        rating=rating,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.TestimonialList(items=[to_testimonial_schema(r) for r in rows], page=page, limit=limit)


@router.post("", response_model=schemas.TestimonialEnvelope, status_code=status.HTTP_201_CREATED)
async def create_testimonial(
    testimonial: schemas.TestimonialCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    db_testimonial = await crud.create_testimonial(db, testimonial, created_by=admin.phone)
    return schemas.TestimonialEnvelope(testimonial=to_testimonial_schema(db_testimonial))


@router.put("/{testimonial_id}", response_model=schemas.TestimonialEnvelope)
async def update_testimonial(
    testimonial_id: int,
    testimonial: schemas.TestimonialUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    """
    Merge the supplied fields over the stored testimonial. A page placement is only
    accepted when it names the testimonial's own service type.
    """
    db_testimonial = await crud.get_testimonial(db, testimonial_id)
    if db_testimonial is None:
        raise NotFoundError("Testimonial not found")

    changes = {field: getattr(testimonial, field) for field in testimonial.model_fields_set}
    if "is_home" in changes:
        changes["is_home"] = bool(changes["is_home"])

    name = changes.get("name", db_testimonial.name)
    review = changes.get("review", db_testimonial.review)
    if not name or not review:
        raise BadRequestError("name and review are required")

    page = changes.get("page", db_testimonial.page)
    if page is not None:
        service_type = changes.get("service_type", db_testimonial.service_type) or db_testimonial.service_type
        if not service_type or page.lower() != service_type.lower():
            raise BadRequestError("Service type must match the page")

    db_testimonial = await crud.update_testimonial(db, db_testimonial, changes, updated_by=admin.phone)
    return schemas.TestimonialEnvelope(testimonial=to_testimonial_schema(db_testimonial))


@router.delete("/{testimonial_id}")
async def delete_testimonial(
    testimonial_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    deleted = await crud.delete_testimonial(db, testimonial_id, deleted_by=admin.phone)
    if not deleted:
        raise NotFoundError("Testimonial not found")
    return {"message": "Deleted successfully"}
