from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from core import models, schemas
from typing import Any, Dict, List, Optional, Type
import logging

from utils.serialization import project_columns
from utils.text import digits_only

logger = logging.getLogger(__name__)

def log_db_operation(operation: str, table: str, record_id: Any, actor: str, additional_info: Optional[Dict] = None):
    """Log database operations with the acting principal"""
    log_data = {
        "operation": operation,
        "table": table,
        "record_id": str(record_id),
        "user": actor,
        "additional_info": additional_info or {}
    }
    logger.info(f"DB_OPERATION: {log_data}")

# User CRUD operations
async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.id == user_id))
    return result.scalars().first()

async def get_user_by_uid(db: AsyncSession, uid: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.uid == uid))
    return result.scalars().first()

async def create_user(db: AsyncSession, uid: str, name: Optional[str], phone: Optional[str], email: Optional[str] = None) -> models.User:
    db_user = models.User(uid=uid, name=name, phone=phone, email=email)
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)

    log_db_operation("CREATE", "users", db_user.id, uid, {"phone": phone})
    return db_user

async def update_user(db: AsyncSession, db_user: models.User, user_data: Dict[str, Any]) -> models.User:
    for key, value in user_data.items():
        setattr(db_user, key, value)
    await db.commit()
    await db.refresh(db_user)

    log_db_operation("UPDATE", "users", db_user.id, db_user.uid or "system", {"changes": user_data})
    return db_user

# Admin allow-list operations
async def get_admin(db: AsyncSession, admin_id: int) -> Optional[models.Admin]:
    result = await db.execute(select(models.Admin).where(models.Admin.id == admin_id))
    return result.scalars().first()

async def get_admin_by_phone(db: AsyncSession, phone: str) -> Optional[models.Admin]:
    if not phone:
        return None
    result = await db.execute(select(models.Admin).where(models.Admin.phone == phone))
    return result.scalars().first()

async def list_admins(db: AsyncSession) -> List[models.Admin]:
    result = await db.execute(select(models.Admin).order_by(models.Admin.id.desc()))
    return result.scalars().all()

async def upsert_admin(db: AsyncSession, phone: str, name: Optional[str], actor: str) -> models.Admin:
    """Insert an admin phone, or overwrite the name of an existing entry."""
    db_admin = await get_admin_by_phone(db, phone)
    if db_admin:
        db_admin.name = name
        operation = "UPDATE"
    else:
        db_admin = models.Admin(phone=phone, name=name)
        db.add(db_admin)
        operation = "CREATE"
    await db.commit()
    await db.refresh(db_admin)

    log_db_operation(operation, "admin", db_admin.id, actor, {"phone": phone})
    return db_admin

async def update_admin(db: AsyncSession, db_admin: models.Admin, admin_data: Dict[str, Any], actor: str) -> models.Admin:
    """Apply a partial update. A phone collision surfaces as IntegrityError after rollback."""
    for key, value in admin_data.items():
        setattr(db_admin, key, value)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(db_admin)

    log_db_operation("UPDATE", "admin", db_admin.id, actor, {"changes": admin_data})
    return db_admin

async def delete_admin(db: AsyncSession, admin_id: int, actor: str) -> bool:
    result = await db.execute(delete(models.Admin).where(models.Admin.id == admin_id))
    await db.commit()
    if result.rowcount == 0:
        return False
    log_db_operation("DELETE", "admin", admin_id, actor)
    return True

# Project CRUD operations
async def get_project(db: AsyncSession, project_id: int) -> Optional[models.Project]:
    result = await db.execute(select(models.Project).where(models.Project.id == project_id))
    return result.scalars().first()

async def get_project_by_slug(db: AsyncSession, slug: str) -> Optional[models.Project]:
    # Slugs are not unique; the oldest row wins
    result = await db.execute(
        select(models.Project).where(models.Project.slug == slug).order_by(models.Project.id.asc()).limit(1)
    )
    return result.scalars().first()

async def list_projects(
    db: AsyncSession,
    q: Optional[str] = None,
    city: Optional[str] = None,
    property_type: Optional[str] = None,
    location_area: Optional[str] = None,
    configuration: Optional[str] = None,
    skip: int = 0,
    limit: int = 24,
) -> List[models.Project]:
    """
    Filtered project listing, newest first.

    ``city``, ``property_type`` and ``location_area`` match case-insensitively in full;
    ``q`` is a substring search over title, address and RERA number; ``configuration``
    is a substring search over the stored configurations text.
    """
    query = select(models.Project)
    if city:
        query = query.where(func.lower(models.Project.city) == city.lower())
    if property_type:
        query = query.where(func.lower(models.Project.property_type) == property_type.lower())
    if location_area:
        query = query.where(func.lower(models.Project.location_area) == location_area.lower())
    if q:
        like = f"%{q}%"
        query = query.where(or_(
            models.Project.title.ilike(like),
            models.Project.address.ilike(like),
            models.Project.rera.ilike(like),
        ))
    if configuration:
        query = query.where(models.Project.configurations.ilike(f"%{configuration}%"))

    query = query.order_by(models.Project.created_at.desc(), models.Project.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()

async def create_project(db: AsyncSession, project: schemas.ProjectCreate, slug: str, created_by: Optional[str] = None) -> models.Project:
    """Insert one projects row in its own commit. Rolls back and re-raises on failure."""
    db_project = models.Project(**project_columns(project, slug))
    db.add(db_project)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(db_project)

    log_db_operation("CREATE", "projects", db_project.id, created_by or "system", {"title": project.title, "slug": slug})
    return db_project

async def replace_project(db: AsyncSession, project_id: int, project: schemas.ProjectCreate, slug: str, updated_by: Optional[str] = None) -> Optional[models.Project]:
    """Replace every mutable field of a project. Returns None when the row is absent."""
    db_project = await get_project(db, project_id)
    if not db_project:
        return None

    values = project_columns(project, slug)
    await db.execute(
        update(models.Project)
        .where(models.Project.id == project_id)
        .values(**values)
    )
    await db.commit()

    log_db_operation("UPDATE", "projects", project_id, updated_by or "system", {"title": project.title, "slug": slug})
    await db.refresh(db_project)
    return db_project

async def delete_project(db: AsyncSession, project_id: int, deleted_by: Optional[str] = None) -> bool:
    result = await db.execute(delete(models.Project).where(models.Project.id == project_id))
    await db.commit()
    if result.rowcount == 0:
        return False
    log_db_operation("DELETE", "projects", project_id, deleted_by or "system")
    return True

# Enquiry operations, shared by the three enquiry tables
async def create_enquiry(db: AsyncSession, model: Type[models.Base], data: Dict[str, Any], created_by: Optional[str] = None):
    db_enquiry = model(**data)
    db.add(db_enquiry)
    await db.commit()
    await db.refresh(db_enquiry)

    log_db_operation("CREATE", model.__tablename__, db_enquiry.id, created_by or "public", {"user_id": data.get("user_id")})
    return db_enquiry

async def list_enquiries_with_users(db: AsyncSession, model: Type[models.Base], *conditions) -> List[Any]:
    """Enquiry rows joined with their owning user (which may be missing), newest first."""
    query = (
        select(model, models.User)
        .outerjoin(models.User, models.User.id == model.user_id)
        .where(*conditions)
        .order_by(model.created_at.desc(), model.id.desc())
    )
    result = await db.execute(query)
    return result.all()

async def find_related_enquiries(
    db: AsyncSession,
    model: Type[models.Base],
    user_id: Optional[int] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
) -> List[Any]:
    """
    Enquiries of one table that belong to the given user id, user phone or email.

    A user id takes precedence over phone and email. Phones compare on their digits
    only; emails compare case-insensitively against both the enquiry's email and the
    owning user's email.
    """
    if user_id is not None:
        return await list_enquiries_with_users(db, model, model.user_id == user_id)

    conditions = []
    if phone:
        digits = digits_only(phone)
        phone_col = models.User.phone
        for ch in ("+", "-", " ", "(", ")"):
            phone_col = func.replace(phone_col, ch, "")
        conditions.append(phone_col == digits)
    if email:
        lowered = email.strip().lower()
        conditions.append(func.lower(model.email) == lowered)
        conditions.append(func.lower(models.User.email) == lowered)
    if not conditions:
        return []
    return await list_enquiries_with_users(db, model, or_(*conditions))

async def get_enquiry(db: AsyncSession, model: Type[models.Base], enquiry_id: int):
    result = await db.execute(select(model).where(model.id == enquiry_id))
    return result.scalars().first()

async def update_enquiry(db: AsyncSession, model: Type[models.Base], enquiry_id: int, changes: Dict[str, Any], updated_by: str) -> int:
    result = await db.execute(
        update(model)
        .where(model.id == enquiry_id)
        .values(**changes)
    )
    await db.commit()
    if result.rowcount:
        log_db_operation("UPDATE", model.__tablename__, enquiry_id, updated_by, {"changes": changes})
    return result.rowcount

async def delete_enquiry(db: AsyncSession, model: Type[models.Base], enquiry_id: int, deleted_by: str) -> bool:
    result = await db.execute(delete(model).where(model.id == enquiry_id))
    await db.commit()
    if result.rowcount == 0:
        return False
    log_db_operation("DELETE", model.__tablename__, enquiry_id, deleted_by)
    return True

# Testimonial operations
async def get_testimonial(db: AsyncSession, testimonial_id: int) -> Optional[models.Testimonial]:
    result = await db.execute(select(models.Testimonial).where(models.Testimonial.id == testimonial_id))
    return result.scalars().first()

async def list_testimonials(
    db: AsyncSession,
    service_type: Optional[str] = None,
    rating: Optional[int] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[models.Testimonial]:
    query = select(models.Testimonial)
    if service_type:
        query = query.where(models.Testimonial.service_type == service_type)
    if rating is not None:
        query = query.where(models.Testimonial.rating == rating)
    query = query.order_by(models.Testimonial.created_at.desc(), models.Testimonial.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()

async def create_testimonial(db: AsyncSession, testimonial: schemas.TestimonialCreate, created_by: Optional[str] = None) -> models.Testimonial:
    db_testimonial = models.Testimonial(**testimonial.model_dump())
    db.add(db_testimonial)
    await db.commit()
    await db.refresh(db_testimonial)

    log_db_operation("CREATE", "testimonials", db_testimonial.id, created_by or "system", {"name": testimonial.name})
    return db_testimonial

async def update_testimonial(db: AsyncSession, db_testimonial: models.Testimonial, changes: Dict[str, Any], updated_by: Optional[str] = None) -> models.Testimonial:
    for key, value in changes.items():
        setattr(db_testimonial, key, value)
    await db.commit()
    await db.refresh(db_testimonial)

    log_db_operation("UPDATE", "testimonials", db_testimonial.id, updated_by or "system", {"changes": changes})
    return db_testimonial

async def delete_testimonial(db: AsyncSession, testimonial_id: int, deleted_by: Optional[str] = None) -> bool:
    result = await db.execute(delete(models.Testimonial).where(models.Testimonial.id == testimonial_id))
    await db.commit()
    if result.rowcount == 0:
        return False
    log_db_operation("DELETE", "testimonials", testimonial_id, deleted_by or "system")
    return True
