"""Migration execution and status endpoints."""

import logging
import os
import secrets
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..models import (
    MigrationListResponse,
    MigrationResponse,
    MigrationStartRequest,
    MigrationStartResponse,
)
from ..storage import MigrationRunStore, migration_storage
from ...config import load_environment
from ...exceptions import ConfigurationError
from ...models.migration import MigrationConfig, MigrationRun, MigrationStatus
from ...orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()
bearer = HTTPBearer(auto_error=False)

OrchestratorFactory = Callable[[MigrationConfig], MigrationOrchestrator]


def require_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> None:
    """Enforce MIGRATION_API_TOKEN when it is set."""
    expected = os.environ.get("MIGRATION_API_TOKEN")
    if not expected:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing token")


def get_store() -> MigrationRunStore:
    return migration_storage


def get_base_config() -> MigrationConfig:
    load_environment()
    return MigrationConfig.from_env()


def get_orchestrator_factory() -> OrchestratorFactory:
    return MigrationOrchestrator


def _to_response(run: MigrationRun) -> MigrationResponse:
    return MigrationResponse.model_validate(run.to_dict())


@router.post("", response_model=MigrationStartResponse, dependencies=[Depends(require_token)])
async def start_migration(
    request: MigrationStartRequest,
    background_tasks: BackgroundTasks,
    store: MigrationRunStore = Depends(get_store),
    base_config: MigrationConfig = Depends(get_base_config),
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """Start a migration run in the background."""
    config = MigrationConfig.from_dict({
        **base_config.to_dict(),
        "webflow_api_token": base_config.webflow_api_token,
        "payload_api_token": base_config.payload_api_token,
        "dry_run": request.dry_run,
        "entities": request.entities,
        "include_drafts": request.include_drafts,
        "migrate_images": request.migrate_images,
    })
    try:
        config.require_credentials()
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    run = MigrationRun(name=config.name, dry_run=config.dry_run)
    if not store.try_register(run):
        raise HTTPException(status_code=409, detail="A migration is already running")

    background_tasks.add_task(run_migration_task, factory, config, run)
    return MigrationStartResponse(status="started", migration_id=run.id)


@router.get("", response_model=MigrationListResponse, dependencies=[Depends(require_token)])
async def list_migrations(store: MigrationRunStore = Depends(get_store)):
    """List all runs started since the server came up."""
    runs = store.list_all()
    return MigrationListResponse(migrations=[_to_response(r) for r in runs], total=len(runs))


@router.get("/{migration_id}", response_model=MigrationResponse, dependencies=[Depends(require_token)])
async def get_migration(migration_id: str, store: MigrationRunStore = Depends(get_store)):
    """Get a specific run."""
    run = store.get(migration_id)
    if not run:
        raise HTTPException(status_code=404, detail="Migration not found")
    return _to_response(run)


def run_migration_task(factory: OrchestratorFactory, config: MigrationConfig, run: MigrationRun) -> None:
    """Background task; the orchestrator fills in ``run`` as it progresses."""
    logger.info(f"Starting migration {run.id}")
    try:
        factory(config).run_migration(run)
    except ConfigurationError as e:
        logger.error(f"Migration {run.id} could not start: {e}")
        run.errors.append({"step": None, "error": str(e)})
        run.status = MigrationStatus.FAILED
        return
    logger.info(f"Migration {run.id} finished with status {run.status.value}")
