import logging
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
from pydantic import ValidationError
import utils.crud as crud
from core import models, schemas
from core.database import get_db
from core.errors import BadRequestError, NotFoundError
from utils.dependencies import get_current_admin
from utils.serialization import enquiry_row_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Enquiries"],
)

# Logical table name -> (model, update schema). Only these tables are reachable.
ENQUIRY_TABLES = {
    "home": (models.HomeEnquiry, schemas.HomeEnquiryUpdate),
    "custom": (models.CustomEnquiry, schemas.CustomEnquiryUpdate),
    "kb": (models.KbEnquiry, schemas.KbEnquiryUpdate),
}


def _resolve_table(table: Optional[str]):
    key = (table or "").strip()
    if key not in ENQUIRY_TABLES:
        raise BadRequestError("Invalid or missing table. Use home|custom|kb")
    return key, ENQUIRY_TABLES[key]


# Public create routes
@router.post("/api/enquiries", response_model=schemas.EnquiryCreated, status_code=status.HTTP_201_CREATED)
async def create_home_enquiry(enquiry: schemas.HomeEnquiryCreate, db: AsyncSession = Depends(get_db)):
    db_enquiry = await crud.create_enquiry(db, models.HomeEnquiry, enquiry.model_dump())
    return schemas.EnquiryCreated(id=db_enquiry.id, message="Enquiry saved successfully")


@router.post("/api/kb_enquiries", response_model=schemas.EnquiryCreated, status_code=status.HTTP_201_CREATED)
async def create_kb_enquiry(enquiry: schemas.KbEnquiryCreate, db: AsyncSession = Depends(get_db)):
    db_enquiry = await crud.create_enquiry(db, models.KbEnquiry, enquiry.model_dump())
    return schemas.EnquiryCreated(id=db_enquiry.id, message="KB enquiry saved")


@router.post("/api/custom_enquiries", response_model=schemas.EnquiryCreated, status_code=status.HTTP_201_CREATED)
async def create_custom_enquiry(enquiry: schemas.CustomEnquiryCreate, db: AsyncSession = Depends(get_db)):
    db_enquiry = await crud.create_enquiry(db, models.CustomEnquiry, enquiry.model_dump())
    return schemas.EnquiryCreated(id=db_enquiry.id, message="Custom enquiry saved")


# Admin routes
@router.get("/api/enquiries")
async def list_enquiries(
    table: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    key, (model, _) = _resolve_table(table)
    rows = await crud.list_enquiries_with_users(db, model)
    return {"items": [enquiry_row_to_dict(row, key) for row in rows]}


@router.get("/api/enquiries/related")
async def related_enquiries(
    user_id: Optional[int] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    """Enquiries across all tables belonging to one customer."""
    if user_id is None and not phone and not email:
        raise BadRequestError("Provide user_id or phone or email as query params")

    items = []
    for key, (model, _) in ENQUIRY_TABLES.items():
        rows = await crud.find_related_enquiries(db, model, user_id=user_id, phone=phone, email=email)
        items.extend(enquiry_row_to_dict(row, key) for row in rows)
    return {"items": items}


@router.put("/api/enquiries/{table}/{enquiry_id}")
async def update_enquiry(
    table: str,
    enquiry_id: int,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    key, (model, update_schema) = _resolve_table(table)
    try:
        changes = update_schema.model_validate(payload).model_dump(exclude_unset=True)
    except ValidationError as e:
        raise BadRequestError(f"Invalid enquiry fields: {e.errors()[0].get('msg')}")
    if not changes:
        raise BadRequestError("No editable fields provided")

    updated = await crud.update_enquiry(db, model, enquiry_id, changes, updated_by=admin.phone)
    if not updated:
        raise NotFoundError("Enquiry not found")

    rows = await crud.list_enquiries_with_users(db, model, model.id == enquiry_id)
    return {"updated": enquiry_row_to_dict(rows[0], key) if rows else None}


@router.delete("/api/enquiries/{table}/{enquiry_id}")
async def delete_enquiry(
    table: str,
    enquiry_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    _, (model, _) = _resolve_table(table)
    deleted = await crud.delete_enquiry(db, model, enquiry_id, deleted_by=admin.phone)
    if not deleted:
        raise NotFoundError("Not found")
    return {"deleted": True}
