"""Migration listing and execution endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request

from ..models import (
    MigrationInfo,
    MigrationListResponse,
    ReportResponse,
    RunRequest,
)
from ...exceptions import ConfigurationError, SourceError
from ...models.migration import MigrationOptions
from ...registry import MigrationRegistry

router = APIRouter()


def get_registry(request: Request) -> MigrationRegistry:
    return request.app.state.registry


@router.get("", response_model=MigrationListResponse)
def list_migrations(registry: MigrationRegistry = Depends(get_registry)):
    """List registered migrations."""
    migrations = []
    for kind in registry.kinds:
        definition = registry.get(kind)
        migrations.append(MigrationInfo(
            kind=kind,
            source=definition.source.name,
            target=definition.writer.target_name,
            label=definition.label,
            dedupe_keys=list(definition.dedupe_keys),
            custom_helper=definition.helper_override is not None,
        ))
    return MigrationListResponse(migrations=migrations, total=len(migrations))


@router.post("/{kind}/run", response_model=ReportResponse)
def run_migration(
    kind: str,
    data: RunRequest,
    registry: MigrationRegistry = Depends(get_registry),
):
    """
    Run one migration synchronously and return its report.

    Declared as a plain function so FastAPI runs it in its threadpool; the
    runner itself is blocking.
    """
    if kind not in registry:
        raise HTTPException(status_code=404, detail=f"Migration not found: {kind}")

    try:
        options = MigrationOptions(
            offset=data.offset,
            limit=data.limit,
            label=data.label,
            dedupe_keys=tuple(data.dedupe_keys),
        )
        report = registry.run(kind, options)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SourceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return ReportResponse(kind=kind, **report.to_dict())
