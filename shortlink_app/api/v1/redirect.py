from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Request
from fastapi.responses import RedirectResponse

from shortlink_app.config import Settings
from shortlink_app.dependencies import get_click_recorder, get_resolver, get_settings, get_source_address
from shortlink_app.schemas.click import ClickObservation
from shortlink_app.services.classifier import classify_request
from shortlink_app.services.click_recorder import ClickRecorder
from shortlink_app.services.resolver import MappingResolver

router = APIRouter(tags=["redirect"])

NOT_FOUND_DETAIL = "Short URL not found"


@router.get("/{path:path}", include_in_schema=False)
def redirect_to_destination(
    path: str,
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    source_address: str = Depends(get_source_address),
    resolver: MappingResolver = Depends(get_resolver),
    recorder: ClickRecorder = Depends(get_click_recorder),
):
    """
    Redirect a shortcode to its destination.

    Flow:
    1. Classify host + path (pure, no I/O); anything that is not a lookup is a 404
    2. Resolve the live mapping (one query)
    3. Capture click metadata now, while the request still exists
    4. Return 302; the click is written after the response has been sent

    A failed click write never affects the redirect.
    """
    key = classify_request(
        method=request.method,
        host=request.headers.get("host", ""),
        path=request.url.path,
        root_domain=settings.root_domain,
    )
    if key is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)

    resolved = resolver.resolve(key.identifier, key.partition)
    if resolved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)

    observation = ClickObservation(
        source_address=source_address,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
        country_hint=request.headers.get(settings.country_header),
    )
    background_tasks.add_task(recorder.record, resolved.mapping_id, observation)

    return RedirectResponse(url=resolved.destination, status_code=status.HTTP_302_FOUND)
