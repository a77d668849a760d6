"""Project registry endpoints: scan, sync, import and lifecycle operations."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status

from src.commander.api.dependencies import Lifecycle, Reconciler, SettingsDep
from src.commander.schemas.project import (
    Candidate,
    CountResponse,
    ImportRequest,
    ImportResult,
    ProjectRead,
    ProjectUpdate,
    ScanReport,
    ScanRequest,
    SyncResult,
)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get(
    "",
    response_model=list[ProjectRead],
    summary="List active projects",
    description="List active projects in manual sort order.",
)
async def list_projects(lifecycle: Lifecycle) -> list[ProjectRead]:
    projects = await lifecycle.list_active()
    return [ProjectRead.model_validate(p) for p in projects]


@router.post(
    "",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add or update a project",
    description=(
        "Match an active project by identity key, then by path, and set its name, tags, "
        "color and path. Creates the project (201) when nothing matches, otherwise 200."
    ),
    responses={
        200: {"description": "Existing project updated"},
        400: {"description": "Path not allowed"},
        409: {"description": "Path held by another active project"},
    },
)
async def upsert_project(
    candidate: Candidate, reconciler: Reconciler, response: Response
) -> ProjectRead:
    project, created = await reconciler.upsert(candidate)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ProjectRead.model_validate(project)


@router.get(
    "/archived",
    response_model=list[ProjectRead],
    summary="List archived projects",
    description="List archived projects ordered by name.",
)
async def list_archived_projects(lifecycle: Lifecycle) -> list[ProjectRead]:
    projects = await lifecycle.list_archived()
    return [ProjectRead.model_validate(p) for p in projects]


@router.post(
    "/scan",
    response_model=ScanReport,
    summary="Scan for projects",
    description="Dry run: list project candidates under a root without changing the registry.",
    responses={
        400: {"description": "Root path not allowed"},
        503: {"description": "Root path missing or unreadable"},
    },
)
async def scan_projects(
    reconciler: Reconciler,
    settings: SettingsDep,
    request: ScanRequest | None = None,
) -> ScanReport:
    root = request.root_path if request and request.root_path else settings.scan_root
    return await reconciler.scan(root)


@router.post(
    "/sync",
    response_model=SyncResult,
    summary="Sync registry with disk",
    description=(
        "Scan a root and reconcile the registry against it: new directories are added, "
        "moved ones keep their id, vanished ones are archived."
    ),
    responses={
        400: {"description": "Root path not allowed"},
        409: {"description": "Another sync is running (fail-fast lock mode)"},
        503: {"description": "Root path missing or unreadable; nothing was changed"},
    },
)
async def sync_projects(
    reconciler: Reconciler,
    settings: SettingsDep,
    request: ScanRequest | None = None,
) -> SyncResult:
    root = request.root_path if request and request.root_path else settings.scan_root
    return await reconciler.sync_root(root)


@router.post(
    "/import",
    response_model=ImportResult,
    status_code=status.HTTP_201_CREATED,
    summary="Import projects",
    description="Create projects from explicit candidates. Collisions are reported, never overwritten.",
)
async def import_projects(request: ImportRequest, reconciler: Reconciler) -> ImportResult:
    return await reconciler.import_candidates(request.candidates)


@router.post(
    "/archived/purge",
    response_model=CountResponse,
    summary="Purge all archived projects",
)
async def purge_archived_projects(lifecycle: Lifecycle) -> CountResponse:
    return CountResponse(count=await lifecycle.purge_all_archived())


@router.post(
    "/reset",
    response_model=CountResponse,
    summary="Reset registry",
    description="Delete every project and every planning item and issue link. Irreversible.",
    responses={400: {"description": "Confirmation missing"}},
)
async def reset_registry(
    lifecycle: Lifecycle,
    confirm: Annotated[bool, Query(description="Must be true")] = False,
) -> CountResponse:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reset is irreversible; pass confirm=true",
        )
    return CountResponse(count=await lifecycle.reset_all())


@router.get(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Get project",
    responses={404: {"description": "Project not found"}},
)
async def get_project(project_id: UUID, lifecycle: Lifecycle) -> ProjectRead:
    return ProjectRead.model_validate(await lifecycle.get(project_id))


@router.patch(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Edit project metadata",
    description="Change name, tags or color. Fields left out of the body are kept.",
    responses={404: {"description": "Project not found"}},
)
async def update_project(
    project_id: UUID, changes: ProjectUpdate, lifecycle: Lifecycle
) -> ProjectRead:
    return ProjectRead.model_validate(await lifecycle.update(project_id, changes))


@router.post(
    "/{project_id}/archive",
    response_model=ProjectRead,
    summary="Archive project",
    responses={
        404: {"description": "Project not found"},
        409: {"description": "Project already archived"},
    },
)
async def archive_project(project_id: UUID, lifecycle: Lifecycle) -> ProjectRead:
    return ProjectRead.model_validate(await lifecycle.archive(project_id))


@router.post(
    "/{project_id}/restore",
    response_model=ProjectRead,
    summary="Restore project",
    description="Reactivate an archived project whose directory still exists.",
    responses={
        404: {"description": "Project not found"},
        409: {"description": "Project active, path gone, or path/identity held by another project"},
    },
)
async def restore_project(project_id: UUID, lifecycle: Lifecycle) -> ProjectRead:
    return ProjectRead.model_validate(await lifecycle.restore(project_id))


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Purge project",
    description="Permanently delete an archived project. Linked planning items and issues are kept.",
    responses={
        204: {"description": "Project purged"},
        404: {"description": "Project not found"},
        409: {"description": "Project is active"},
    },
)
async def purge_project(project_id: UUID, lifecycle: Lifecycle) -> None:
    await lifecycle.purge(project_id)
