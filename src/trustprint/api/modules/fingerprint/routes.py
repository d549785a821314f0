from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, HTTPException, Query, Request, Response

from trustprint.api.middleware import get_session_user_id
from trustprint.api.modules.fingerprint.exceptions import FingerprintUnauthorizedError
from trustprint.api.modules.fingerprint.schema import (
    FingerprintRecordListResponse,
    FingerprintRecordPaginationParams,
    FingerprintRecordResponse,
    GenerateFingerprintResponse,
    SyncFingerprintResponse,
)
from trustprint.api.modules.fingerprint.service import FingerprintService
from trustprint.api.modules.fingerprint.services.core import ExecutionMode, utc_now
from trustprint.api.modules.fingerprint.services.public.collector import (
    build_collector_script,
)
from trustprint.api.modules.fingerprint.services.reconciliation import FingerprintStore
from trustprint.settings import Config

router = APIRouter(route_class=DishkaRoute)


@router.get("/generate", response_model=GenerateFingerprintResponse, status_code=200)
async def generate_fingerprint(
    request: Request,
    service: FromDishka[FingerprintService],
) -> GenerateFingerprintResponse:
    evaluation = service.evaluate(request.headers)
    fingerprint_id = await service.resolve_fingerprint_id(request.headers, evaluation)
    return GenerateFingerprintResponse.build(
        fingerprint_id=fingerprint_id,
        evaluation=evaluation,
        evaluated_at=utc_now(),
    )


@router.post("/sync", response_model=SyncFingerprintResponse, status_code=200)
async def sync_fingerprint(
    request: Request,
    service: FromDishka[FingerprintService],
) -> SyncFingerprintResponse:
    evaluation = getattr(request.state, "fingerprint_evaluation", None)
    if evaluation is None:
        evaluation = service.evaluate(request.headers)

    try:
        work = service.after_authentication(
            headers=request.headers,
            evaluation=evaluation,
            user_id=get_session_user_id(request),
            client_host=request.client.host if request.client else None,
            require_session=True,
        )
    except FingerprintUnauthorizedError as exc:
        raise HTTPException(status_code=401, detail="Unauthorized") from exc

    record = await service.dispatch(work, ExecutionMode.AWAITED)
    return SyncFingerprintResponse(
        record=FingerprintRecordResponse.from_record(record) if record else None,
    )


@router.get("/collector.js", status_code=200)
async def get_collector_script(config: FromDishka[Config]) -> Response:
    script = build_collector_script(
        signal_header=config.fingerprint.signal_header,
        client_id_header=config.fingerprint.client_id_header,
        modules=config.fingerprint.modules.collectors,
    )
    return Response(content=script, media_type="application/javascript")


@router.get("/records", response_model=FingerprintRecordListResponse, status_code=200)
async def get_fingerprint_records(
    store: FromDishka[FingerprintStore],
    params: FingerprintRecordPaginationParams = Query(),
) -> FingerprintRecordListResponse:
    items = await store.get_all(
        limit=params.page_size,
        offset=params.offset,
        flagged=params.flagged,
        user_id=params.user_id,
    )
    total = await store.get_total_count(flagged=params.flagged, user_id=params.user_id)

    return FingerprintRecordListResponse.build(
        items=[FingerprintRecordResponse.from_record(item) for item in items],
        total=total,
        params=params,
    )


@router.get(
    "/records/{fingerprint_id}",
    response_model=FingerprintRecordResponse,
    status_code=200,
)
async def get_fingerprint_record(
    fingerprint_id: str,
    store: FromDishka[FingerprintStore],
) -> FingerprintRecordResponse:
    record = await store.find_one(fingerprint_id)
    if record is None:
        raise HTTPException(status_code=404, detail="fingerprint_not_found")
    return FingerprintRecordResponse.from_record(record)
