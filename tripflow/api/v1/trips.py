"""
Trip status API endpoints.

Bill-of-lading completion and status edits for a trip. Workflow errors are
answered with ``{"code", "message"}`` bodies; the message is translated for
the caller's locale.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from tripflow.api.deps import CurrentIdentity, DatabaseSession
from tripflow.core.locale import create_translator
from tripflow.core.logging import get_logger
from tripflow.schemas.trips import (
    DataResponse,
    ErrorResponse,
    UpdateBillOfLadingRequest,
    UpdateTripStatusRequest,
)
from tripflow.services.trips.errors import ErrorType, TripWorkflowError
from tripflow.services.trips.service import TripStatusService, get_trip_status_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/orgs/{org_id}/orders/{order_code}/trips/{trip_code}",
    tags=["Trips"],
)

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


async def get_trip_service(db: DatabaseSession) -> TripStatusService:
    return get_trip_status_service(db)


TripService = Annotated[TripStatusService, Depends(get_trip_service)]


def _preferred_locale(accept_language: Optional[str]) -> Optional[str]:
    if not accept_language:
        return None
    return accept_language.split(",")[0].split("-")[0].strip().lower() or None


def error_response(
    error_type: ErrorType,
    status_code: int,
    locale: Optional[str] = None,
    **params,
) -> JSONResponse:
    """Build a ``{"code", "message"}`` error response."""
    translate = create_translator(locale)
    message = translate(f"error.{error_type.value.lower()}", **params)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=error_type.value, message=message).model_dump(),
    )


def _workflow_error_response(error: TripWorkflowError, locale: Optional[str]) -> JSONResponse:
    log = logger.warning if error.status_code < 500 else logger.error
    log(
        "Trip workflow error",
        error_type=error.error_type.value,
        message=error.message,
        context=error.context,
    )
    return error_response(error.error_type, error.status_code, locale, **error.context)


def _resolve_organization(path_org_id: UUID, identity_org_id: UUID) -> UUID:
    if path_org_id != identity_org_id:
        logger.warning(
            "Path organization differs from token organization",
            path_org_id=str(path_org_id),
            organization_id=str(identity_org_id),
        )
    return identity_org_id


@router.put(
    "/bill-of-ladings",
    response_model=DataResponse,
    responses=ERROR_RESPONSES,
    summary="Complete trip with bill of lading",
)
async def update_bill_of_lading(
    org_id: UUID,
    order_code: str,
    trip_code: str,
    request: UpdateBillOfLadingRequest,
    identity: CurrentIdentity,
    service: TripService,
):
    """
    Record the bill of lading on a trip and mark it COMPLETED.

    Returns:
        ``{"data": <trip id>}``; 409 ``EXCLUSIVE`` when the trip changed
        since the client read it, 400 ``EXISTED`` for a duplicate number,
        500 ``UNKNOWN`` otherwise
    """
    organization_id = _resolve_organization(org_id, identity.organization_id)
    logger.info(
        "Bill of lading update requested",
        order_code=order_code,
        trip_code=trip_code,
        trip_id=str(request.id),
    )

    try:
        trip_id = await service.complete_bill_of_lading(organization_id, identity.user_id, request)
    except TripWorkflowError as e:
        return _workflow_error_response(e, request.locale)
    except Exception as e:
        logger.error(
            "Unexpected error completing trip",
            trip_id=str(request.id),
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return error_response(
            ErrorType.UNKNOWN,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            request.locale,
        )

    return DataResponse(data=trip_id)


@router.post(
    "/status/edit",
    response_model=DataResponse,
    responses=ERROR_RESPONSES,
    summary="Append trip status",
)
async def edit_trip_status(
    org_id: UUID,
    order_code: str,
    trip_code: str,
    request: UpdateTripStatusRequest,
    identity: CurrentIdentity,
    service: TripService,
    accept_language: Annotated[Optional[str], Header()] = None,
):
    """
    Append a status entry to a trip.

    Returns:
        ``{"data": <status id>}``; 409 ``EXCLUSIVE`` when the trip
        changed since the client read it, 400 ``EXISTED`` for a duplicate
        bill-of-lading number, 400 ``VALIDATION`` when the driver report id
        is missing, 500 ``UNKNOWN`` otherwise
    """
    organization_id = _resolve_organization(org_id, identity.organization_id)
    locale = _preferred_locale(accept_language)
    logger.info(
        "Trip status edit requested",
        order_code=order_code,
        trip_code=trip_code,
        trip_id=str(request.id),
        status=request.status.value if request.status else None,
    )

    try:
        status_id = await service.edit_status(organization_id, identity.user_id, request)
    except TripWorkflowError as e:
        return _workflow_error_response(e, locale)
    except Exception as e:
        logger.error(
            "Unexpected error editing trip status",
            trip_id=str(request.id),
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return error_response(ErrorType.UNKNOWN, status.HTTP_500_INTERNAL_SERVER_ERROR, locale)

    return DataResponse(data=status_id)
