from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from shortlink_app.config import Settings
from shortlink_app.dependencies import (
    Owner,
    get_allocator,
    get_analytics,
    get_owner,
    get_rate_limiter,
    get_settings,
    get_source_address,
)
from shortlink_app.models.mapping import Mapping
from shortlink_app.ratelimit.limiter import RateLimiter
from shortlink_app.schemas.mapping import (
    AnonymousMappingCreate,
    AnonymousMappingResponse,
    MappingCreate,
    MappingResponse,
    MappingStats,
    ShortestMappingResponse,
)
from shortlink_app.services.allocator import MappingAllocator
from shortlink_app.services.analytics import ClickAnalytics
from shortlink_app.services.results import AllocationErrorKind, AllocationFailure, AllocationResult

router = APIRouter(prefix="/mappings", tags=["mappings"])

ERROR_STATUS = {
    AllocationErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    AllocationErrorKind.QUOTA_EXCEEDED: status.HTTP_403_FORBIDDEN,
    AllocationErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    AllocationErrorKind.EXHAUSTED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _unwrap(result: AllocationResult) -> Mapping:
    if isinstance(result, AllocationFailure):
        raise HTTPException(status_code=ERROR_STATUS[result.kind], detail=result.message)
    return result.mapping


def _describe(mapping: Mapping, settings: Settings) -> dict:
    return {"short_url": mapping.short_path(settings.root_domain)}


def _get_owned_or_404(allocator: MappingAllocator, mapping_id: int, owner: Owner) -> Mapping:
    mapping = allocator.get_owned(mapping_id, owner.owner_id)
    if mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapping not found")
    return mapping


@router.post("", response_model=MappingResponse, status_code=status.HTTP_201_CREATED)
def create_mapping(
    payload: MappingCreate,
    owner: Owner = Depends(get_owner),
    allocator: MappingAllocator = Depends(get_allocator),
    settings: Settings = Depends(get_settings),
):
    """Create a mapping for the authenticated owner, within their plan quota"""
    mapping = _unwrap(
        allocator.allocate(
            destination=payload.destination,
            owner_id=owner.owner_id,
            quota=owner.quota,
            partition=payload.partition,
            custom_identifier=payload.custom_identifier,
        )
    )
    return MappingResponse.model_validate(mapping).model_copy(update=_describe(mapping, settings))


@router.post("/anonymous", response_model=AnonymousMappingResponse, status_code=status.HTTP_201_CREATED)
async def create_anonymous_mapping(
    payload: AnonymousMappingCreate,
    source: str = Depends(get_source_address),
    limiter: RateLimiter = Depends(get_rate_limiter),
    allocator: MappingAllocator = Depends(get_allocator),
    settings: Settings = Depends(get_settings),
):
    """
    Create an expiring, ownerless mapping.

    The daily counter is only bumped after the mapping exists, so a
    rejected destination never costs the caller one of their creations.
    """
    decision = await limiter.check(source)
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=decision.error)

    mapping = _unwrap(
        allocator.allocate_anonymous(payload.destination, expires_in_days=settings.anonymous_expiry_days)
    )
    remaining = await limiter.increment(source)

    response = MappingResponse.model_validate(mapping).model_dump()
    response.update(_describe(mapping, settings), remaining=remaining)
    return AnonymousMappingResponse(**response)


@router.post("/{mapping_id}/shortest", response_model=ShortestMappingResponse)
def ensure_shortest_mapping(
    mapping_id: int,
    response: Response,
    owner: Owner = Depends(get_owner),
    allocator: MappingAllocator = Depends(get_allocator),
    settings: Settings = Depends(get_settings),
):
    """Get or create the global-namespace equivalent of one of the owner's mappings"""
    source = _get_owned_or_404(allocator, mapping_id, owner)

    result = allocator.ensure_global_mapping(source, owner.owner_id, owner.quota)
    mapping = _unwrap(result)
    if result.created:
        response.status_code = status.HTTP_201_CREATED

    data = MappingResponse.model_validate(mapping).model_dump()
    data.update(_describe(mapping, settings), created=result.created)
    return ShortestMappingResponse(**data)


@router.get("/{mapping_id}/stats", response_model=MappingStats)
def get_mapping_stats(
    mapping_id: int,
    days: int = Query(30, ge=1, le=365, description="Timeline and heatmap window in days"),
    owner: Owner = Depends(get_owner),
    allocator: MappingAllocator = Depends(get_allocator),
    analytics: ClickAnalytics = Depends(get_analytics),
):
    """Click analytics for one of the owner's mappings"""
    mapping = _get_owned_or_404(allocator, mapping_id, owner)

    return MappingStats(
        id=mapping.id,
        identifier=mapping.identifier,
        **analytics.summary(mapping.id),
        owner_total_clicks=analytics.total_clicks_for_owner(owner.owner_id),
        timeline=analytics.timeline(mapping.id, days=days),
        heatmap=analytics.activity_heatmap(mapping.id, days=days),
        referrers=analytics.top_referrers(mapping.id),
        devices=analytics.device_breakdown(mapping.id),
        countries=analytics.country_breakdown(mapping.id),
    )


@router.delete("/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mapping(
    mapping_id: int,
    owner: Owner = Depends(get_owner),
    allocator: MappingAllocator = Depends(get_allocator),
):
    """Delete one of the owner's mappings together with its clicks"""
    if not allocator.delete_mapping(mapping_id, owner.owner_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapping not found")
