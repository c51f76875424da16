import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import utils.crud as crud
from core import models, schemas
from core.database import get_db
from core.errors import BadRequestError, ConflictError, NotFoundError
from utils.dependencies import get_current_admin
from utils.text import normalize_phone

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admins",
    tags=["Admins"],
)


@router.get("", response_model=schemas.AdminList)
async def list_admins(
    db: AsyncSession = Depends(get_db),
    current_admin: models.Admin = Depends(get_current_admin),
):
    admins = await crud.list_admins(db)
    return schemas.AdminList(items=[schemas.Admin.model_validate(a) for a in admins])


@router.post("", response_model=schemas.AdminEnvelope, status_code=status.HTTP_201_CREATED)
async def create_admin(
    admin_data: schemas.AdminCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: models.Admin = Depends(get_current_admin),
):
    """Add a phone to the allow-list. An existing phone keeps its row and gets the new name."""
    phone = normalize_phone(admin_data.phone)
    if not phone:
        raise BadRequestError("phone required")
    db_admin = await crud.upsert_admin(db, phone=phone, name=admin_data.name, actor=current_admin.phone)
    return schemas.AdminEnvelope(admin=schemas.Admin.model_validate(db_admin))


@router.put("/{admin_id}", response_model=schemas.AdminEnvelope)
async def update_admin(
    admin_id: int,
    admin_data: schemas.AdminUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: models.Admin = Depends(get_current_admin),
):
    changes = {}
    if "phone" in admin_data.model_fields_set:
        phone = normalize_phone(admin_data.phone)
        if not phone:
            raise BadRequestError("phone required")
        changes["phone"] = phone
    if "name" in admin_data.model_fields_set:
        changes["name"] = admin_data.name or None
    if not changes:
        raise BadRequestError("nothing to update")

    db_admin = await crud.get_admin(db, admin_id)
    if db_admin is None:
        raise NotFoundError("Not found")

    try:
        db_admin = await crud.update_admin(db, db_admin, changes, actor=current_admin.phone)
    except IntegrityError:
        logger.info(f"Admin phone update rejected, phone already exists: {changes.get('phone')}")
        raise ConflictError("phone already exists")
    return schemas.AdminEnvelope(admin=schemas.Admin.model_validate(db_admin))


@router.delete("/{admin_id}")
async def delete_admin(
    admin_id: int,
    db: AsyncSession = Depends(get_db),
    current_admin: models.Admin = Depends(get_current_admin),
):
    deleted = await crud.delete_admin(db, admin_id, actor=current_admin.phone)
    if not deleted:
        raise NotFoundError("Not found")
    return {"ok": True}
