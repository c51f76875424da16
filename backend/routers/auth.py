from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import utils.crud as crud
from core import schemas
from core.database import get_db
from core.errors import BadRequestError
from core.identity import Principal
from utils.dependencies import get_principal
from utils.text import normalize_phone

router = APIRouter(
    prefix="/api/auth",
    tags=["Auth"],
)


@router.post("", response_model=schemas.AuthResponse)
async def authenticate(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Exchange a verified credential for the application user record.
    The user is created on first sign-in; admin status comes from the allow-list.
    """
    if not principal.phone_number:
        raise BadRequestError("No phone number in token")

    db_user = await crud.get_user_by_uid(db, principal.uid)
    if db_user is None:
        db_user = await crud.create_user(db, uid=principal.uid, name=principal.name, phone=principal.phone_number)
    else:
        changes = {}
        if principal.name and principal.name != db_user.name:
            changes["name"] = principal.name
        if principal.phone_number != db_user.phone:
            changes["phone"] = principal.phone_number
        if changes:
            db_user = await crud.update_user(db, db_user, changes)

    admin = await crud.get_admin_by_phone(db, normalize_phone(principal.phone_number))
    return schemas.AuthResponse(
        success=True,
        user=schemas.AuthUser(
            id=db_user.id,
            uid=db_user.uid,
            phone=db_user.phone,
            name=db_user.name,
            isAdmin=admin is not None,
        ),
    )
