from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import utils.crud as crud
from core import models, schemas
from core.config import Settings
from core.database import get_db
from core.errors import NotFoundError
from utils.dependencies import get_current_admin, get_settings
from utils.serialization import to_project_schema
from utils.text import slugify

router = APIRouter(
    prefix="/api/projects",
    tags=["Projects"],
)


@router.get("", response_model=schemas.ProjectList)
async def list_projects(
    q: Optional[str] = None,
    city: Optional[str] = None,
    property_type: Optional[str] = None,
    location_area: Optional[str] = None,
    configuration: Optional[str] = None,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    page = max(1, page)
    limit = limit if limit is not None else app_settings.PROJECTS_PAGE_SIZE
    limit = min(max(1, limit), app_settings.MAX_PAGE_SIZE)

    rows = await crud.list_projects(
        db,
        q=q,
        city=city,
        property_type=property_type,
        location_area=location_area,
        configuration=configuration,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.ProjectList(items=[to_project_schema(r) for r in rows], page=page, limit=limit)


@router.get("/{ref}", response_model=schemas.Project)
async def read_project(ref: str, db: AsyncSession = Depends(get_db)):
    """Numeric references are ids, anything else is a slug."""
    if ref.isdigit():
        db_project = await crud.get_project(db, int(ref))
    else:
        db_project = await crud.get_project_by_slug(db, ref)
    if db_project is None:
        raise NotFoundError("Project not found")
    return to_project_schema(db_project)


@router.post("", response_model=schemas.ProjectCreated, status_code=status.HTTP_201_CREATED)
async def create_project(
    project: schemas.ProjectCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    slug = slugify(project.slug) if project.slug else slugify(project.title)
    db_project = await crud.create_project(db, project, slug, created_by=admin.phone)
    return schemas.ProjectCreated(id=db_project.id, slug=db_project.slug)


@router.put("/{project_id}", response_model=schemas.ProjectEnvelope)
async def update_project(
    project_id: int,
    project: schemas.ProjectCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    slug = slugify(project.slug) if project.slug else slugify(project.title)
    db_project = await crud.replace_project(db, project_id, project, slug, updated_by=admin.phone)
    if db_project is None:
        raise NotFoundError("Not found")
    return schemas.ProjectEnvelope(project=to_project_schema(db_project))


@router.delete("/{project_id}")
async def delete_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.Admin = Depends(get_current_admin),
):
    deleted = await crud.delete_project(db, project_id, deleted_by=admin.phone)
    if not deleted:
        raise NotFoundError("Not found")
    return {"message": "Deleted"}
