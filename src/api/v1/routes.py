"""
API v1 routes.

Defines REST endpoints for the membership registration wizard. Each
wizard session is a resource; every user action is one request that
returns the updated view.

Domain exceptions are translated to HTTP status codes by the handlers
registered in src.api.main.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from src.api.dependencies import get_registration_service
from src.config.settings import Settings, get_settings
from src.api.models import (
    ErrorResponse,
    FeeQuoteResponse,
    FieldsUpdateRequest,
    GWPBucket,
    GWPInputRequest,
    MemberUpdateRequest,
    PaymentRequest,
    PaymentResponse,
    RegistrationView,
    VerificationRequest,
)
from src.domain.models import LogoFile, WizardSession
from src.domain.registration import RegistrationService

router = APIRouter(tags=["v1"])

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Unknown registration session"}}


def _view(session: WizardSession) -> RegistrationView:
    return RegistrationView.from_session(session)


def _validated_view(session: WizardSession) -> RegistrationView:
    """Step changes that failed validation are reported as 422."""
    if session.error:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=session.error)
    return _view(session)


@router.post(
    "/registrations",
    response_model=RegistrationView,
    status_code=status.HTTP_201_CREATED,
    summary="Start a registration",
    description="Open a new wizard session on the data notice step.",
)
async def start_registration(
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.start())


@router.get(
    "/registrations/{session_id}",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Get the current wizard view",
)
async def get_registration(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.get(session_id))


@router.patch(
    "/registrations/{session_id}",
    response_model=RegistrationView,
    responses={
        **NOT_FOUND,
        422: {"model": ErrorResponse, "description": "Invalid field or admin test mode disabled"},
    },
    summary="Update wizard fields",
    description="Apply a partial update. Every field sent is marked touched.",
)
async def update_registration(
    session_id: str,
    request_data: FieldsUpdateRequest,
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings),
) -> RegistrationView:
    if request_data.is_admin_test is not None and not settings.allow_admin_test:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Admin test mode is not enabled",
        )
    session = service.update_fields(
        session_id, request_data.field_changes(), address=request_data.address_changes()
    )
    return _view(session)


@router.put(
    "/registrations/{session_id}/gwp/{bucket}",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Edit one gross written premium bucket",
)
async def update_gwp_input(
    session_id: str,
    bucket: GWPBucket,
    request_data: GWPInputRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.update_gwp_input(session_id, bucket, request_data.value))


@router.post(
    "/registrations/{session_id}/touched/{field_name}",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Mark a field as touched (blur)",
)
async def mark_touched(
    session_id: str,
    field_name: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.mark_touched(session_id, field_name))


@router.post(
    "/registrations/{session_id}/next",
    response_model=RegistrationView,
    responses={**NOT_FOUND, 422: {"model": ErrorResponse, "description": "Step is incomplete"}},
    summary="Advance to the next step",
)
async def next_step(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _validated_view(service.next_step(session_id))


@router.post(
    "/registrations/{session_id}/back",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Go back one step",
)
async def previous_step(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.previous_step(session_id))


@router.post(
    "/registrations/{session_id}/steps/{step}",
    response_model=RegistrationView,
    responses={**NOT_FOUND, 422: {"model": ErrorResponse, "description": "Earlier step incomplete"}},
    summary="Jump to a step",
    description="Backward jumps always succeed; forward jumps require every earlier step to validate.",
)
async def go_to_step(
    session_id: str,
    step: int,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _validated_view(service.go_to_step(session_id, step))


@router.post(
    "/registrations/{session_id}/reset",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Clear the form",
)
async def reset_registration(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.reset(session_id))


@router.post(
    "/registrations/{session_id}/members",
    response_model=RegistrationView,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Add a team member",
    description="Appends a blank roster entry; ignored once the roster holds three members.",
)
async def add_member(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.add_member(session_id))


@router.patch(
    "/registrations/{session_id}/members/{member_id}",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Edit a team member",
)
async def update_member(
    session_id: str,
    member_id: str,
    request_data: MemberUpdateRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.update_member(session_id, member_id, request_data.changes()))


@router.delete(
    "/registrations/{session_id}/members/{member_id}",
    response_model=RegistrationView,
    responses={
        **NOT_FOUND,
        409: {"model": ErrorResponse, "description": "The registrant cannot be removed"},
    },
    summary="Remove a team member",
)
async def remove_member(
    session_id: str,
    member_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.remove_member(session_id, member_id))


@router.post(
    "/registrations/{session_id}/members/{member_id}/primary",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Make a member the account administrator",
)
async def set_primary_contact(
    session_id: str,
    member_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.set_primary_contact(session_id, member_id))


@router.put(
    "/registrations/{session_id}/logo",
    response_model=RegistrationView,
    responses={**NOT_FOUND, 400: {"model": ErrorResponse, "description": "Logo rejected"}},
    summary="Upload the organization logo",
    description="Send the image as the raw request body with its Content-Type. "
    "PNG, JPEG and SVG up to 5MB are accepted.",
)
async def upload_logo(
    session_id: str,
    request: Request,
    filename: str = Query("logo", max_length=255),
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    logo = LogoFile(filename=filename, content_type=content_type, data=await request.body())
    return _view(service.attach_logo(session_id, logo))


@router.delete(
    "/registrations/{session_id}/logo",
    response_model=RegistrationView,
    responses=NOT_FOUND,
    summary="Remove the organization logo",
)
async def remove_logo(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.attach_logo(session_id, None))


@router.get(
    "/registrations/{session_id}/fee",
    response_model=FeeQuoteResponse,
    responses=NOT_FOUND,
    summary="Get the annual membership fee",
)
async def get_fee(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> FeeQuoteResponse:
    return FeeQuoteResponse.from_quote(service.fee_quote(session_id))


@router.post(
    "/registrations/{session_id}/payment",
    response_model=PaymentResponse,
    responses=NOT_FOUND,
    summary="Pay by card or request an invoice",
    description="If the email is not verified yet a code is sent and the status is "
    "'verification_required'; submitting the code resumes the payment.",
)
async def request_payment(
    session_id: str,
    request_data: PaymentRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> PaymentResponse:
    return PaymentResponse.from_outcome(
        service.request_payment(session_id, request_data.payment_method)
    )


@router.post(
    "/registrations/{session_id}/verification",
    response_model=PaymentResponse,
    responses=NOT_FOUND,
    summary="Submit the email verification code",
)
async def submit_verification_code(
    session_id: str,
    request_data: VerificationRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> PaymentResponse:
    return PaymentResponse.from_outcome(
        service.submit_verification_code(session_id, request_data.code)
    )


@router.post(
    "/registrations/{session_id}/verification/resend",
    response_model=RegistrationView,
    responses={**NOT_FOUND, 502: {"model": ErrorResponse, "description": "Code not sent"}},
    summary="Send a new verification code",
)
async def resend_verification_code(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationView:
    return _view(service.resend_verification_code(session_id))


@router.delete(
    "/registrations/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard a registration session",
)
async def discard_registration(
    session_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> Response:
    service.discard(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
