"""Chart plugin REST API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException

from chart_service.dependencies import get_chart_factory
from chart_service.models.requests import ColumnsRequest, ValidateRequest
from chart_service.plugins.errors import (
    InvalidConfigurationError,
    InvalidStateError,
    LoaderFailure,
    PluginNotFoundError,
)
from chart_service.plugins.factory import ChartFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/charts", tags=["charts"])


async def _ready_factory() -> ChartFactory:
    """Get the factory, initializing it on first use."""
    factory = get_chart_factory()
    try:
        await factory.initialize()
    except LoaderFailure as e:
        logger.error(f"Chart registry unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Chart registry unavailable: {e.original}")
    return factory


def _resolve(factory: ChartFactory, library: str, name: str):
    try:
        return factory.resolve(name, library)
    except PluginNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/")
async def list_charts(category: Optional[str] = None, library: Optional[str] = None):
    """List registered chart plugins, optionally filtered by category and/or library."""
    factory = await _ready_factory()
    descriptors = factory.available_plugins()
    if category:
        descriptors = [d for d in descriptors if d.category == category]
    if library:
        descriptors = [d for d in descriptors if d.library == library]
    return {"plugins": [d.to_dict() for d in descriptors]}


@router.get("/categories")
async def list_categories():
    factory = await _ready_factory()
    return {"categories": factory.categories()}


@router.get("/libraries")
async def list_libraries():
    factory = await _ready_factory()
    return {"libraries": factory.libraries()}


@router.get("/stats")
async def get_stats():
    """Registration statistics, including descriptors skipped during loading."""
    factory = await _ready_factory()
    stats = factory.statistics().to_dict()
    stats["failures"] = [f.to_dict() for f in factory.registry.failures]
    return stats


@router.get("/search")
async def search_charts(q: str = ""):
    factory = await _ready_factory()
    return {"query": q, "plugins": [d.to_dict() for d in factory.search_plugins(q)]}


@router.post("/compatible-columns")
async def compatible_columns(body: ColumnsRequest):
    """Filter dataset columns down to those a field role accepts."""
    factory = get_chart_factory()
    columns = factory.compatible_columns(body.field_role, body.columns)
    return {"field_role": body.field_role, "columns": [c.model_dump() for c in columns]}


@router.post("/offerable")
async def offerable_charts(body: ColumnsRequest):
    """Chart plugins whose data requirements the given dataset satisfies."""
    factory = await _ready_factory()
    return {"plugins": [d.to_dict() for d in factory.offerable_plugins(body.columns)]}


@router.post("/reload")
async def reload_charts():
    """Clear the registry and load every chart plugin again."""
    factory = get_chart_factory()
    try:
        await factory.reinitialize()
    except LoaderFailure as e:
        raise HTTPException(status_code=503, detail=f"Chart registry unavailable: {e.original}")
    stats = factory.statistics()
    return {
        "message": f"Reloaded {stats.total} chart plugin(s)",
        "stats": stats.to_dict(),
        "failures": [f.to_dict() for f in factory.registry.failures],
    }


@router.get("/{library}/{name}")
async def get_chart(library: str, name: str):
    factory = await _ready_factory()
    return _resolve(factory, library, name).to_dict()


@router.get("/{library}/{name}/defaults")
async def get_defaults(library: str, name: str):
    """Default configuration derived from the plugin's schema."""
    factory = await _ready_factory()
    descriptor = _resolve(factory, library, name)
    return {"configuration": factory.default_configuration(descriptor)}


@router.post("/{library}/{name}/validate")
async def validate_configuration(library: str, name: str, body: ValidateRequest):
    factory = await _ready_factory()
    descriptor = _resolve(factory, library, name)
    return factory.validate(descriptor, body.configuration, body.columns).to_dict()


@router.post("/{library}/{name}/instantiate")
async def instantiate_chart(library: str, name: str, body: ValidateRequest):
    """Validate and resolve a configuration for the rendering layer."""
    factory = await _ready_factory()
    descriptor = _resolve(factory, library, name)
    try:
        request = factory.instantiation_request(descriptor, body.configuration)
    except InvalidConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.report.to_dict())
    return request.to_dict()
