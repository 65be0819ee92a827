from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.db.database import get_session
from concierge.schemas.service_request import (
    ServiceRequestCreate,
    ServiceRequestRead,
    ServiceRequestStatusUpdate,
)
from concierge.services.service_request_service import (
    InvalidStatusTransition,
    ServiceRequestService,
    get_service_request_service,
)
from concierge.stores.notifier import NEW_REQUEST, REQUEST_UPDATED, Notifier, get_notifier

router = APIRouter(prefix="/services", tags=["services"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_service_request(
    payload: ServiceRequestCreate,
    db: AsyncSession = Depends(get_session),
    service: ServiceRequestService = Depends(get_service_request_service),
    notifier: Notifier = Depends(get_notifier),
) -> Dict[str, Any]:
    try:
        request = await service.create_request(db, payload)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.exception("Failed to create service request", extra={"session_id": payload.session_id})
        return JSONResponse(
            status_code=500,
            content={"message": "Failed to create service request", "error": str(exc)},
        )

    data = ServiceRequestRead.model_validate(request).model_dump(mode="json", by_alias=True)
    await notifier.broadcast(NEW_REQUEST, data)
    return {"message": "Service request created!", "data": data}


@router.get("", response_model=List[ServiceRequestRead])
async def list_service_requests(
    db: AsyncSession = Depends(get_session),
    service: ServiceRequestService = Depends(get_service_request_service),
) -> List[ServiceRequestRead]:
    requests = await service.list_requests(db)
    return [ServiceRequestRead.model_validate(request) for request in requests]


@router.patch("/{request_id}", response_model=ServiceRequestRead)
async def update_service_request(
    request_id: int,
    payload: ServiceRequestStatusUpdate,
    db: AsyncSession = Depends(get_session),
    service: ServiceRequestService = Depends(get_service_request_service),
    notifier: Notifier = Depends(get_notifier),
) -> ServiceRequestRead:
    try:
        request = await service.update_status(db, request_id, payload.status)
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if not request:
        raise HTTPException(status_code=404, detail="Service request not found.")
    await db.commit()

    data = ServiceRequestRead.model_validate(request)
    await notifier.broadcast(REQUEST_UPDATED, data.model_dump(mode="json", by_alias=True))
    logger.info(
        "session_event",
        extra={"session_id": request.session_id, "event": "request.updated", "status": request.status.value},
    )
    return data
