"""
FastAPI dependencies for dependency injection.

Long-lived infrastructure (engine, session factory, rate-limit store,
click recorder) is built once by main.create_app() and kept on app.state.
The providers below read it from the request's app, so every app instance,
including the ones tests build, carries its own wiring.

Pattern: Dependency Injection
- Routes depend on services, services on a session
- Tests swap settings by building a new app, not by patching globals
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from shortlink_app.config import Settings
from shortlink_app.ratelimit.limiter import RateLimiter
from shortlink_app.services.allocator import MappingAllocator
from shortlink_app.services.analytics import ClickAnalytics
from shortlink_app.services.click_recorder import ClickRecorder
from shortlink_app.services.identifier_strategies import SecureRandomIdentifierStrategy
from shortlink_app.services.resolver import MappingResolver
from shortlink_app.services.tiers import quota_for_plan


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    """Yield a session for the duration of one request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_allocator(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> MappingAllocator:
    """
    Get MappingAllocator with its generator configured from settings.

    Returns:
        MappingAllocator bound to this request's session
    """
    strategy = SecureRandomIdentifierStrategy(
        length=settings.shortcode_length,
        max_retries=settings.max_retries,
    )
    return MappingAllocator(db=db, strategy=strategy, root_domain=settings.root_domain)


def get_resolver(db: Session = Depends(get_db)) -> MappingResolver:
    return MappingResolver(db)


def get_analytics(db: Session = Depends(get_db)) -> ClickAnalytics:
    return ClickAnalytics(db)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_click_recorder(request: Request) -> ClickRecorder:
    return request.app.state.click_recorder


@dataclass(frozen=True)
class Owner:
    """Authenticated caller, as asserted by the upstream auth layer."""
    owner_id: str
    quota: int


def get_owner(
    x_owner_id: Optional[str] = Header(None),
    x_owner_plan: Optional[str] = Header(None),
) -> Owner:
    """
    Read the caller's identity from trusted upstream headers.

    Authentication happens in front of this service; a missing
    X-Owner-Id means the request never went through it.

    Raises:
        HTTPException: 401 when no owner is present
    """
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return Owner(owner_id=x_owner_id.strip(), quota=quota_for_plan(x_owner_plan))


def get_source_address(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """
    Client address as reported by the edge proxy.

    Only the configured edge header is trusted; without it every request
    counts as 127.0.0.1 (local development).
    """
    address = request.headers.get(settings.source_ip_header)
    if address and address.strip():
        return address.strip()
    return "127.0.0.1"
