"""Checkout API endpoints.

Provides endpoints for the checkout flow:
- POST /checkout/sessions - open a checkout session
- GET /checkout/sessions/{id} - session state
- POST /checkout/sessions/{id}/address - submit the shipping address
- POST /checkout/sessions/{id}/back - return to the address step
- POST /checkout/sessions/{id}/payment-step - create the order
- POST /checkout/sessions/{id}/payments - start a payment (online or COD)
- POST /checkout/sessions/{id}/payments/verify - verify the gateway callback
- POST /checkout/sessions/{id}/payments/abandon - gateway UI closed
- POST /checkout/sessions/{id}/resume - pick up a pending order
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from storefront.api.converters import order_to_response
from storefront.api.dependencies import (
    get_current_user,
    get_device_id,
    get_orchestrator,
    get_order_query_service,
)
from storefront.api.errors import field_details, raise_error
from storefront.api.schemas import (
    AddressSchema,
    CheckoutSessionCreateRequest,
    CheckoutSessionResponse,
    ErrorResponse,
    GatewaySessionSchema,
    PaymentAbandonRequest,
    PaymentStartRequest,
    PaymentStepRequest,
    PaymentVerifyRequest,
    ResumeOrderRequest,
)
from storefront.application.checkout_service import (
    CheckoutOrchestrator,
    CheckoutResult,
    CheckoutSession,
    CheckoutSessionRepository,
    get_checkout_session_repository,
)
from storefront.application.order_service import OrderQueryService
from storefront.domain.value_objects import Money, PaymentMethod, User

logger = structlog.get_logger()

router = APIRouter(prefix="/checkout/sessions", tags=["Checkout"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_session(
    session_id: str,
    device_id: Annotated[str, Depends(get_device_id)],
    sessions: Annotated[CheckoutSessionRepository, Depends(get_checkout_session_repository)],
) -> CheckoutSession:
    """Look up a session opened from the calling device."""
    session = sessions.get(session_id)
    if session is None or session.device_id != device_id:
        raise_error("SESSION_NOT_FOUND", f"Checkout session not found: {session_id}")
    return session


# ============================================================================
# Converters
# ============================================================================


def session_to_response(result: CheckoutResult) -> CheckoutSessionResponse:
    """Convert a successful CheckoutResult to a response."""
    session = result.session
    order = session.order

    gateway_session = None
    gs = result.gateway_session or session.gateway_session
    if gs is not None:
        prefill = {}
        if order is not None:
            prefill = {
                "name": order.customer_name,
                "email": order.customer_email,
                "contact": order.shipping_address.phone,
            }
        gateway_session = GatewaySessionSchema(
            gateway_order_id=gs.gateway_order_id,
            gateway_key=gs.gateway_key,
            amount=gs.amount_minor,
            currency=gs.currency,
            receipt=gs.receipt,
            prefill=prefill,
        )

    return CheckoutSessionResponse(
        id=session.id,
        step=session.step.value,
        order=order_to_response(order) if order else None,
        payment_id=session.payment.id if session.payment else None,
        payment_status=session.payment.status.value if session.payment else None,
        gateway_session=gateway_session,
        redirect=result.redirect.value if result.redirect else None,
        actions=[action.value for action in result.actions],
        failure_reason=session.failure_reason,
        shipment_pending=session.shipment_error is not None,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def respond(result: CheckoutResult) -> CheckoutSessionResponse:
    """Return the session on success, else raise the mapped HTTP error."""
    if not result.success:
        raise_error(
            result.error_code,
            result.error,
            default_code="CHECKOUT_ERROR",
            details=field_details(result.field_errors),
            redirect=result.redirect.value if result.redirect else None,
            actions=[action.value for action in result.actions],
        )
    return session_to_response(result)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Open checkout session",
)
async def create_session(
    device_id: Annotated[str, Depends(get_device_id)],
    user: Annotated[User | None, Depends(get_current_user)],
    sessions: Annotated[CheckoutSessionRepository, Depends(get_checkout_session_repository)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
    queries: Annotated[OrderQueryService, Depends(get_order_query_service)],
    request: CheckoutSessionCreateRequest | None = None,
) -> CheckoutSessionResponse:
    """Open a checkout session at the address step.

    With resume_pending set, a signed-in user's most recent order still
    awaiting payment is attached, so paying for it does not create a
    second order.
    """
    session = CheckoutSession.create(device_id)
    sessions.save(session)

    if request is not None and request.resume_pending and user is not None:
        pending = await queries.latest_resumable_order(user)
        if pending is not None:
            return respond(await orchestrator.resume_order(session, pending.id))

    logger.info("Checkout session opened", session_id=session.id, device_id=device_id)
    return session_to_response(CheckoutResult(session=session))


@router.get(
    "/{session_id}",
    response_model=CheckoutSessionResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get checkout session",
)
async def get_checkout_session(
    session: Annotated[CheckoutSession, Depends(get_session)],
) -> CheckoutSessionResponse:
    """Get the session's current step and order."""
    return session_to_response(CheckoutResult(session=session))


@router.post(
    "/{session_id}/address",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Submit shipping address",
)
async def submit_address(
    request: AddressSchema,
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
) -> CheckoutSessionResponse:
    """Validate the address and move to the payment step.

    Invalid fields come back as details and the session stays at the
    address step.
    """
    return respond(await orchestrator.submit_address(session, request.model_dump()))


@router.post(
    "/{session_id}/back",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Return to address step",
)
async def go_back(
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
) -> CheckoutSessionResponse:
    """Go back to edit the address. Only allowed before an order exists."""
    return respond(await orchestrator.go_to_address(session))


@router.post(
    "/{session_id}/payment-step",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Enter payment step",
)
async def enter_payment_step(
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
    request: PaymentStepRequest | None = None,
) -> CheckoutSessionResponse:
    """Create the order from the cart, or reuse the session's order."""
    discount = None
    if request is not None and request.discount is not None:
        discount = Money.from_decimal(request.discount)
    return respond(await orchestrator.enter_payment(session, discount))


@router.post(
    "/{session_id}/payments",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Start payment",
)
async def start_payment(
    request: PaymentStartRequest,
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
) -> CheckoutSessionResponse:
    """Start paying for the session's order.

    Online methods return the gateway session for the client to open.
    COD completes the checkout in this call.
    """
    try:
        method = PaymentMethod(request.method.strip().upper())
    except ValueError:
        raise_error(
            "INVALID_PAYMENT_METHOD",
            f"Unsupported payment method: {request.method}",
        )
    return respond(await orchestrator.start_payment(session, method))


@router.post(
    "/{session_id}/payments/verify",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Verify payment",
)
async def verify_payment(
    request: PaymentVerifyRequest,
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
) -> CheckoutSessionResponse:
    """Verify the gateway callback and complete the checkout."""
    return respond(
        await orchestrator.complete_payment(
            session,
            gateway_payment_id=request.gateway_payment_id,
            gateway_order_id=request.gateway_order_id,
            signature=request.signature,
        )
    )


@router.post(
    "/{session_id}/payments/abandon",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Abandon payment",
)
async def abandon_payment(
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
    request: PaymentAbandonRequest | None = None,
) -> CheckoutSessionResponse:
    """Record that the gateway UI closed without a payment."""
    reason = request.reason if request is not None else "dismissed"
    return respond(await orchestrator.abandon_payment(session, reason))


@router.post(
    "/{session_id}/resume",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Resume pending order",
)
async def resume_order(
    request: ResumeOrderRequest,
    session: Annotated[CheckoutSession, Depends(get_session)],
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_orchestrator)],
) -> CheckoutSessionResponse:
    """Attach one of the user's pending orders to this session."""
    return respond(await orchestrator.resume_order(session, request.order_id))
