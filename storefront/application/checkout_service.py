"""Checkout application service.

Orchestrates the checkout flow including:
- Capturing and validating the shipping address
- Creating the order from a cart snapshot
- Opening a payment gateway session (or taking the COD path)
- Verifying the gateway callback signature
- Creating the shipment and clearing the cart on success

The orchestrator is the only writer of order status. Every external call is
awaited in sequence; no step starts before the previous one has been durably
recorded.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

import structlog

from storefront.application.cart_service import CartService
from storefront.application.ports import (
    AuthService,
    GatewaySession,
    OrderRepository,
    PaymentGatewayAdapter,
    PaymentRepository,
    ShipmentAdapter,
)
from storefront.domain.base import utcnow
from storefront.domain.entities import Order, OrderDraft, OrderUpdate, PaymentDetails
from storefront.domain.exceptions import (
    AddressRequiredError,
    AuthRequiredError,
    CartEmptyError,
    CheckoutInProgressError,
    DomainError,
    GatewayError,
    InvalidStateTransitionError,
    OrderNotFoundError,
    PersistenceError,
    ShipmentError,
    ValidationError,
    VerificationMismatchError,
)
from storefront.domain.pricing import PricingPolicy
from storefront.domain.state_machines import (
    CheckoutStep,
    OrderStatus,
    PaymentStatus,
    validate_checkout_transition,
)
from storefront.domain.value_objects import (
    Address,
    Money,
    PaymentMethod,
    User,
    validate_address_fields,
)

logger = structlog.get_logger()

SUPERSEDED_REASON = "superseded"
INVALID_SIGNATURE_REASON = "invalid_signature"
GATEWAY_ORDER_MISMATCH_REASON = "gateway_order_mismatch"


# ============================================================================
# Session and Result Types
# ============================================================================


class Redirect(str, Enum):
    """Where the client must navigate after a checkout call."""

    CART = "cart"
    ADDRESS = "address"
    SIGN_IN = "sign_in"
    SUCCESS = "success"
    FAILURE = "failure"


class UserAction(str, Enum):
    """Actions the client offers alongside an error or failure."""

    RETRY = "retry"
    SIGN_IN = "sign_in"
    CONTACT_SUPPORT = "contact_support"
    RETURN_HOME = "return_home"


@dataclass
class CheckoutSession:
    """State of one checkout attempt.

    Attributes:
        id: Session identifier.
        device_id: Device the session was opened from.
        step: Current checkout step.
        order: Order created for this session, once it exists.
        payment: Latest payment attempt.
        gateway_session: Open gateway session while awaiting the result.
        payment_verified: Signature check passed; only persistence is left.
        in_flight: A call is running against this session.
        redirect_issued: The terminal redirect was already handed out.
        failure_reason: Why the session failed.
        shipment_error: Carrier error recorded after a successful payment.
    """

    id: str
    device_id: str
    step: CheckoutStep = CheckoutStep.ADDRESS
    order: Order | None = None
    payment: PaymentDetails | None = None
    gateway_session: GatewaySession | None = None
    payment_verified: bool = False
    in_flight: bool = False
    redirect_issued: bool = False
    failure_reason: str | None = None
    shipment_error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, device_id: str) -> "CheckoutSession":
        return cls(id=str(uuid4()), device_id=device_id)

    def advance(self, target: CheckoutStep) -> None:
        """Move to a new step.

        Raises:
            InvalidStateTransitionError: If the move is not allowed.
        """
        if target == self.step:
            return
        validate_checkout_transition(self.id, self.step, target)
        self.step = target
        self.updated_at = utcnow()

    def take_terminal_redirect(self, redirect: Redirect) -> Redirect | None:
        """Hand out the terminal redirect the first time only."""
        if self.redirect_issued:
            return None
        self.redirect_issued = True
        return redirect


@dataclass
class CheckoutResult:
    """Result of a checkout call."""

    session: CheckoutSession | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    redirect: Redirect | None = None
    actions: tuple[UserAction, ...] = ()
    gateway_session: GatewaySession | None = None


# ============================================================================
# In-Memory Session Repository
# ============================================================================


class CheckoutSessionRepository:
    """In-memory repository for checkout sessions.

    Sessions are client-side state; only the order and payment records they
    point at are durable.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, CheckoutSession] = {}

    def save(self, session: CheckoutSession) -> None:
        self._sessions[session.id] = session

    def get(self, session_id: str) -> CheckoutSession | None:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)


_session_repo: CheckoutSessionRepository | None = None


def get_checkout_session_repository() -> CheckoutSessionRepository:
    """Get checkout session repository singleton."""
    global _session_repo
    if _session_repo is None:
        _session_repo = CheckoutSessionRepository()
    return _session_repo


def reset_checkout_session_repository() -> None:
    global _session_repo
    _session_repo = None


# ============================================================================
# Checkout Orchestrator
# ============================================================================


class CheckoutOrchestrator:
    """Application service driving a checkout session to a terminal state.

    Steps:
    1. Address submitted and saved to the cart
    2. Payment step reached: order created from the cart snapshot
    3. Payment started: COD completes directly, online opens a gateway session
    4. Gateway callback verified: order marked processing or failed
    5. Shipment created and cart cleared on completion
    """

    def __init__(
        self,
        cart: CartService,
        auth: AuthService,
        orders: OrderRepository,
        payments: PaymentRepository,
        gateway: PaymentGatewayAdapter,
        shipments: ShipmentAdapter,
        pricing: PricingPolicy | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            cart: Cart service for the current device and user.
            auth: Resolves the signed-in user.
            orders: Order repository.
            payments: Payment attempt repository.
            gateway: Payment gateway adapter.
            shipments: Shipment adapter.
            pricing: Pricing rules, defaults to the standard policy.
            request_id: Request ID for correlation.
        """
        self.cart = cart
        self.auth = auth
        self.orders = orders
        self.payments = payments
        self.gateway = gateway
        self.shipments = shipments
        self.pricing = pricing or PricingPolicy()
        self.request_id = request_id

    # ------------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------------

    async def submit_address(
        self, session: CheckoutSession, fields: Mapping[str, Any]
    ) -> CheckoutResult:
        """Validate and save the shipping address, then move to payment.

        Invalid input keeps the session at the address step.
        """
        return await self._run(session, "submit_address", self._submit_address, fields)

    async def go_to_address(self, session: CheckoutSession) -> CheckoutResult:
        """Navigate back to the address step before an order exists."""
        return await self._run(session, "go_to_address", self._go_to_address)

    async def enter_payment(
        self, session: CheckoutSession, discount: Money | None = None
    ) -> CheckoutResult:
        """Reach the payment step, creating the order if none exists yet.

        Args:
            session: Checkout session.
            discount: Externally supplied discount, zero when absent.
        """
        return await self._run(session, "enter_payment", self._enter_payment, discount)

    async def start_payment(
        self, session: CheckoutSession, method: PaymentMethod
    ) -> CheckoutResult:
        """Start paying for the session's order.

        COD goes straight to shipment and completion. Online methods open a
        gateway session and wait for the callback.
        """
        return await self._run(session, "start_payment", self._start_payment, method)

    async def abandon_payment(
        self, session: CheckoutSession, reason: str = "dismissed"
    ) -> CheckoutResult:
        """Record that the gateway UI was closed without paying."""
        return await self._run(session, "abandon_payment", self._abandon_payment, reason)

    async def complete_payment(
        self,
        session: CheckoutSession,
        gateway_payment_id: str,
        gateway_order_id: str,
        signature: str,
    ) -> CheckoutResult:
        """Verify the gateway callback and finish the checkout."""
        return await self._run(
            session,
            "complete_payment",
            self._complete_payment,
            gateway_payment_id,
            gateway_order_id,
            signature,
        )

    async def resume_order(self, session: CheckoutSession, order_id: str) -> CheckoutResult:
        """Attach a stale pending order of the current user to a fresh session."""
        return await self._run(session, "resume_order", self._resume_order, order_id)

    # ------------------------------------------------------------------------
    # Re-entrancy guard and error translation
    # ------------------------------------------------------------------------

    async def _run(
        self,
        session: CheckoutSession,
        operation: str,
        handler: Callable[..., Awaitable[CheckoutResult]],
        *args: Any,
    ) -> CheckoutResult:
        if session.in_flight:
            return self._error_result(session, operation, CheckoutInProgressError(session.id))

        session.in_flight = True
        try:
            return await handler(session, *args)
        except DomainError as e:
            return self._error_result(session, operation, e)
        except Exception as e:
            logger.error(
                "Checkout call failed",
                session_id=session.id,
                operation=operation,
                step=session.step.value,
                error=str(e),
                request_id=self.request_id,
            )
            return CheckoutResult(
                session=session,
                success=False,
                error="Something went wrong. Please try again.",
                error_code="CHECKOUT_FAILED",
                actions=(UserAction.RETRY, UserAction.CONTACT_SUPPORT),
            )
        finally:
            session.in_flight = False
            session.updated_at = utcnow()

    def _error_result(
        self, session: CheckoutSession, operation: str, error: DomainError
    ) -> CheckoutResult:
        result = CheckoutResult(session=session, success=False, error=error.message)

        if isinstance(error, ValidationError):
            result.error_code = "VALIDATION_ERROR"
            result.field_errors = error.field_errors
        elif isinstance(error, AuthRequiredError):
            result.error_code = "AUTH_REQUIRED"
            result.redirect = Redirect.SIGN_IN
            result.actions = (UserAction.SIGN_IN,)
        elif isinstance(error, CartEmptyError):
            result.error_code = "CART_EMPTY"
            result.redirect = Redirect.CART
        elif isinstance(error, AddressRequiredError):
            result.error_code = "ADDRESS_REQUIRED"
            result.redirect = Redirect.ADDRESS
        elif isinstance(error, PersistenceError):
            result.error_code = "PERSISTENCE_ERROR"
            result.error = "We couldn't save your order. Please try again."
            result.actions = (UserAction.RETRY, UserAction.CONTACT_SUPPORT)
        elif isinstance(error, GatewayError):
            result.error_code = "GATEWAY_ERROR"
            result.error = "Payment failed, please try again."
            result.actions = (UserAction.RETRY, UserAction.RETURN_HOME)
        elif isinstance(error, CheckoutInProgressError):
            result.error_code = "CHECKOUT_IN_PROGRESS"
        elif isinstance(error, OrderNotFoundError):
            result.error_code = "ORDER_NOT_FOUND"
        elif isinstance(error, InvalidStateTransitionError):
            result.error_code = "INVALID_STATE"
        else:
            result.error_code = "CHECKOUT_ERROR"

        log = (
            logger.warning
            if result.error_code in ("VALIDATION_ERROR", "CHECKOUT_IN_PROGRESS")
            else logger.error
        )
        log(
            "Checkout step failed",
            session_id=session.id,
            operation=operation,
            step=session.step.value,
            error_code=result.error_code,
            error=error.message,
            request_id=self.request_id,
        )
        return result

    # ------------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------------

    async def _submit_address(
        self, session: CheckoutSession, fields: Mapping[str, Any]
    ) -> CheckoutResult:
        if session.order is not None or session.step not in (
            CheckoutStep.ADDRESS,
            CheckoutStep.PAYMENT,
        ):
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.PAYMENT.value,
                allowed_transitions=[s.value for s in session.step.allowed_transitions()],
            )

        errors = validate_address_fields(fields)
        if errors:
            raise ValidationError(errors, message="Please correct the highlighted fields")

        address = Address.from_dict(fields)
        await self.cart.save_shipping_address(address)
        session.advance(CheckoutStep.PAYMENT)

        logger.info(
            "Shipping address accepted",
            session_id=session.id,
            city=address.city,
            pincode=address.pincode,
            request_id=self.request_id,
        )
        return CheckoutResult(session=session)

    async def _go_to_address(self, session: CheckoutSession) -> CheckoutResult:
        if session.order is not None:
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.ADDRESS.value,
                allowed_transitions=[s.value for s in session.step.allowed_transitions()],
            )
        session.advance(CheckoutStep.ADDRESS)
        return CheckoutResult(session=session, redirect=Redirect.ADDRESS)

    async def _enter_payment(
        self, session: CheckoutSession, discount: Money | None = None
    ) -> CheckoutResult:
        if session.order is not None:
            logger.info(
                "Reusing existing order for checkout",
                session_id=session.id,
                order_id=session.order.id,
                request_id=self.request_id,
            )
            return CheckoutResult(session=session)

        cart = await self.cart.get_cart()
        if cart.is_empty:
            raise CartEmptyError()

        if cart.shipping_address is None:
            if session.step != CheckoutStep.ADDRESS:
                session.advance(CheckoutStep.ADDRESS)
            raise AddressRequiredError()

        session.advance(CheckoutStep.PAYMENT)

        user = await self.auth.current_user()
        if user is None:
            raise AuthRequiredError("create an order")

        totals = self.pricing.calculate(cart.subtotal, discount)
        draft = OrderDraft.from_cart(user, cart, totals)
        order = await self.orders.create(draft)

        session.order = order
        session.advance(CheckoutStep.ORDER_CREATED)
        self._log_events(order)

        logger.info(
            "Order created",
            session_id=session.id,
            order_id=order.id,
            user_id=user.id,
            total_amount=str(order.total_amount),
            item_count=order.item_count,
            request_id=self.request_id,
        )
        return CheckoutResult(session=session)

    async def _start_payment(
        self, session: CheckoutSession, method: PaymentMethod
    ) -> CheckoutResult:
        if session.step.is_in_flight():
            raise CheckoutInProgressError(session.id)

        if session.order is None:
            result = await self._enter_payment(session)
            if not result.success:
                return result

        if session.step != CheckoutStep.ORDER_CREATED or session.order is None:
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.AWAITING_PAYMENT_RESULT.value,
                allowed_transitions=[s.value for s in session.step.allowed_transitions()],
            )

        user = await self._require_owner(session.order)

        if method == PaymentMethod.COD:
            return await self._pay_on_delivery(session, user)
        return await self._open_gateway_session(session, method)

    async def _pay_on_delivery(self, session: CheckoutSession, user: User) -> CheckoutResult:
        order = self._order(session)

        await self._supersede_active_payment(session)
        await self._update_order(
            session,
            OrderUpdate(
                status=OrderStatus.PROCESSING,
                payment_status=PaymentStatus.PENDING,
                payment_method=PaymentMethod.COD,
            ),
        )
        logger.info(
            "Cash on delivery order confirmed",
            session_id=session.id,
            order_id=order.id,
            user_id=user.id,
            request_id=self.request_id,
        )

        await self._create_shipment(session)
        return await self._complete(session)

    async def _open_gateway_session(
        self, session: CheckoutSession, method: PaymentMethod
    ) -> CheckoutResult:
        order = self._order(session)

        await self._supersede_active_payment(session)

        payment = PaymentDetails.create(order, method)
        await self.payments.create(payment)
        session.payment = payment

        try:
            gateway_session = await self.gateway.create_session(order, method)
        except GatewayError as e:
            payment.mark_failed(f"gateway_error: {e.message}")
            await self._save_payment_quietly(payment)
            raise

        payment.attach_gateway_session(gateway_session.gateway_order_id, gateway_session.gateway_key)
        await self.payments.update(payment)

        await self._update_order(
            session,
            OrderUpdate(
                payment_method=method,
                payment_status=PaymentStatus.PENDING,
                payment_gateway_order_id=gateway_session.gateway_order_id,
            ),
        )

        session.gateway_session = gateway_session
        session.advance(CheckoutStep.AWAITING_PAYMENT_RESULT)

        logger.info(
            "Payment session opened",
            session_id=session.id,
            order_id=order.id,
            payment_id=payment.id,
            gateway_order_id=gateway_session.gateway_order_id,
            amount_minor=gateway_session.amount_minor,
            method=method.value,
            request_id=self.request_id,
        )
        return CheckoutResult(session=session, gateway_session=gateway_session)

    async def _abandon_payment(self, session: CheckoutSession, reason: str) -> CheckoutResult:
        if session.step != CheckoutStep.AWAITING_PAYMENT_RESULT:
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.ORDER_CREATED.value,
                allowed_transitions=[s.value for s in session.step.allowed_transitions()],
            )

        payment = session.payment
        if payment is not None and payment.is_active:
            payment.mark_failed(reason)
            await self.payments.update(payment)
        await self._update_order(session, OrderUpdate(payment_status=PaymentStatus.FAILED))

        session.gateway_session = None
        session.advance(CheckoutStep.ORDER_CREATED)

        logger.info(
            "Payment abandoned",
            session_id=session.id,
            order_id=session.order.id if session.order else None,
            reason=reason,
            request_id=self.request_id,
        )
        return CheckoutResult(
            session=session,
            actions=(UserAction.RETRY, UserAction.RETURN_HOME),
        )

    async def _complete_payment(
        self,
        session: CheckoutSession,
        gateway_payment_id: str,
        gateway_order_id: str,
        signature: str,
    ) -> CheckoutResult:
        if session.step.is_terminal():
            # Terminal redirect was already handed out.
            return CheckoutResult(
                session=session,
                success=session.step == CheckoutStep.COMPLETED,
            )

        if session.step not in (CheckoutStep.AWAITING_PAYMENT_RESULT, CheckoutStep.VERIFYING):
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.VERIFYING.value,
                allowed_transitions=[s.value for s in session.step.allowed_transitions()],
            )

        payment = session.payment
        if payment is None:
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.VERIFYING.value,
            )

        session.advance(CheckoutStep.VERIFYING)

        if not session.payment_verified:
            mismatch = await self._verify_signature(
                payment, gateway_payment_id, gateway_order_id, signature
            )
            if mismatch is not None:
                return await self._fail(session, payment, mismatch)
            session.payment_verified = True

        if payment.is_active:
            payment.mark_completed(gateway_payment_id)
        await self.payments.update(payment)
        await self._update_order(
            session,
            OrderUpdate(status=OrderStatus.PROCESSING, payment_status=PaymentStatus.COMPLETED),
        )
        logger.info(
            "Payment verified",
            session_id=session.id,
            order_id=payment.order_id,
            payment_id=payment.id,
            gateway_payment_id=gateway_payment_id,
            request_id=self.request_id,
        )

        await self._create_shipment(session)
        return await self._complete(session)

    async def _resume_order(self, session: CheckoutSession, order_id: str) -> CheckoutResult:
        if session.order is not None or session.step not in (
            CheckoutStep.ADDRESS,
            CheckoutStep.PAYMENT,
        ):
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.ORDER_CREATED.value,
                allowed_transitions=[s.value for s in session.step.allowed_transitions()],
            )

        user = await self.auth.current_user()
        if user is None:
            raise AuthRequiredError("resume an order")

        order = await self.orders.get(order_id)
        if order is None or order.user_id != user.id:
            raise OrderNotFoundError(order_id)

        if not order.status.is_resumable():
            return CheckoutResult(
                session=session,
                success=False,
                error=f"Order {order_id} is {order.status.value} and cannot be resumed",
                error_code="ORDER_NOT_RESUMABLE",
            )

        attempts = await self.payments.list_for_order(order.id)
        session.payment = next((p for p in reversed(attempts) if p.is_active), None)
        session.order = order
        session.advance(CheckoutStep.PAYMENT)
        session.advance(CheckoutStep.ORDER_CREATED)

        logger.info(
            "Pending order resumed",
            session_id=session.id,
            order_id=order.id,
            payment_attempts=len(attempts),
            request_id=self.request_id,
        )
        return CheckoutResult(session=session)

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def _order(self, session: CheckoutSession) -> Order:
        if session.order is None:
            raise InvalidStateTransitionError(
                entity_type="Checkout",
                entity_id=session.id,
                current_state=session.step.value,
                target_state=CheckoutStep.ORDER_CREATED.value,
            )
        return session.order

    async def _require_owner(self, order: Order) -> User:
        user = await self.auth.current_user()
        if user is None:
            raise AuthRequiredError("pay for an order")
        if user.id != order.user_id:
            raise OrderNotFoundError(order.id)
        return user

    async def _verify_signature(
        self,
        payment: PaymentDetails,
        gateway_payment_id: str,
        gateway_order_id: str,
        signature: str,
    ) -> VerificationMismatchError | None:
        """Check the callback against the session's payment.

        Returns:
            None when the callback is genuine, else the mismatch to fail with.
        """
        if payment.gateway_order_id != gateway_order_id:
            logger.warning(
                "Gateway order does not match payment",
                payment_id=payment.id,
                expected=payment.gateway_order_id,
                received=gateway_order_id,
                request_id=self.request_id,
            )
            return VerificationMismatchError(
                gateway_order_id, gateway_payment_id, GATEWAY_ORDER_MISMATCH_REASON
            )

        try:
            verified = await self.gateway.verify(gateway_order_id, gateway_payment_id, signature)
        except GatewayError as e:
            logger.error(
                "Payment verification unavailable",
                payment_id=payment.id,
                gateway_order_id=gateway_order_id,
                error=e.message,
                request_id=self.request_id,
            )
            return VerificationMismatchError(
                gateway_order_id, gateway_payment_id, f"verification_unavailable: {e.message}"
            )

        if not verified:
            return VerificationMismatchError(
                gateway_order_id, gateway_payment_id, INVALID_SIGNATURE_REASON
            )
        return None

    async def _fail(
        self,
        session: CheckoutSession,
        payment: PaymentDetails,
        mismatch: VerificationMismatchError,
    ) -> CheckoutResult:
        """Mark order and payment failed and hand out the failure redirect."""
        reason = mismatch.reason
        if payment.is_active:
            payment.mark_failed(reason, gateway_payment_id=mismatch.details["gateway_payment_id"])
        await self.payments.update(payment)
        await self._update_order(
            session,
            OrderUpdate(status=OrderStatus.FAILED, payment_status=PaymentStatus.FAILED),
        )

        session.failure_reason = reason
        session.gateway_session = None
        session.advance(CheckoutStep.FAILED)

        logger.warning(
            "Payment verification failed",
            session_id=session.id,
            order_id=payment.order_id,
            payment_id=payment.id,
            reason=reason,
            request_id=self.request_id,
        )
        return CheckoutResult(
            session=session,
            success=False,
            error=mismatch.message,
            error_code="PAYMENT_VERIFICATION_FAILED",
            redirect=session.take_terminal_redirect(Redirect.FAILURE),
            actions=(UserAction.RETRY, UserAction.CONTACT_SUPPORT, UserAction.RETURN_HOME),
        )

    async def _create_shipment(self, session: CheckoutSession) -> None:
        """Create the shipment and record it on the order.

        Failures are logged as a fulfillment alert and never undo the
        payment outcome.
        """
        order = self._order(session)
        alert = (
            "order_confirmed_fulfillment_pending"
            if order.payment_method == PaymentMethod.COD
            else "payment_captured_fulfillment_pending"
        )

        try:
            shipment_id = await self.shipments.create_shipment(order)
        except ShipmentError as e:
            session.shipment_error = e.message
            logger.error(
                "Shipment creation failed",
                alert=alert,
                session_id=session.id,
                order_id=order.id,
                status_code=e.status_code,
                error=e.message,
                request_id=self.request_id,
            )
            return

        try:
            await self._update_order(session, OrderUpdate(shipment_id=shipment_id))
        except PersistenceError as e:
            session.shipment_error = e.message
            logger.error(
                "Shipment created but not recorded on order",
                alert=alert,
                session_id=session.id,
                order_id=order.id,
                shipment_id=shipment_id,
                error=e.message,
                request_id=self.request_id,
            )
            await self._cancel_orphan_shipment(session, shipment_id)
            return

        logger.info(
            "Shipment created",
            session_id=session.id,
            order_id=order.id,
            shipment_id=shipment_id,
            request_id=self.request_id,
        )

    async def _cancel_orphan_shipment(self, session: CheckoutSession, shipment_id: str) -> None:
        """Cancel a shipment the order has no record of.

        The order stays without a shipment ID, so fulfillment picks it up
        again from the alert rather than shipping an untracked parcel.
        """
        try:
            await self.shipments.cancel_shipment(shipment_id)
        except ShipmentError as e:
            logger.error(
                "Orphan shipment could not be cancelled",
                session_id=session.id,
                shipment_id=shipment_id,
                error=e.message,
                request_id=self.request_id,
            )
            return
        logger.warning(
            "Orphan shipment cancelled",
            session_id=session.id,
            shipment_id=shipment_id,
            request_id=self.request_id,
        )

    async def _complete(self, session: CheckoutSession) -> CheckoutResult:
        session.gateway_session = None
        session.advance(CheckoutStep.COMPLETED)
        await self.cart.clear_cart()

        logger.info(
            "Checkout completed",
            session_id=session.id,
            order_id=session.order.id if session.order else None,
            shipment_pending=session.shipment_error is not None,
            request_id=self.request_id,
        )
        return CheckoutResult(
            session=session,
            redirect=session.take_terminal_redirect(Redirect.SUCCESS),
        )

    async def _supersede_active_payment(self, session: CheckoutSession) -> None:
        payment = session.payment
        if payment is None or not payment.is_active:
            return
        payment.mark_failed(SUPERSEDED_REASON)
        await self.payments.update(payment)
        logger.info(
            "Payment attempt superseded",
            session_id=session.id,
            payment_id=payment.id,
            request_id=self.request_id,
        )

    async def _save_payment_quietly(self, payment: PaymentDetails) -> None:
        try:
            await self.payments.update(payment)
        except PersistenceError as e:
            logger.warning(
                "Could not record failed payment attempt",
                payment_id=payment.id,
                error=e.message,
                request_id=self.request_id,
            )

    async def _update_order(self, session: CheckoutSession, update: OrderUpdate) -> Order:
        """Write an order update, retrying once on a persistence failure."""
        order = self._order(session)
        try:
            updated = await self.orders.update_status(order.id, update)
        except PersistenceError as e:
            logger.warning(
                "Order update failed, retrying",
                order_id=order.id,
                fields=sorted(update.fields()),
                error=e.message,
                request_id=self.request_id,
            )
            updated = await self.orders.update_status(order.id, update)

        session.order = updated
        self._log_events(updated)
        return updated

    def _log_events(self, order: Order) -> None:
        for event in order.collect_events():
            logger.info(
                "Domain event",
                event_type=event.event_type,
                aggregate_id=event.aggregate_id,
                payload=event.to_dict()["payload"],
                request_id=self.request_id,
            )


def get_checkout_orchestrator(
    cart: CartService,
    auth: AuthService,
    orders: OrderRepository,
    payments: PaymentRepository,
    gateway: PaymentGatewayAdapter,
    shipments: ShipmentAdapter,
    pricing: PricingPolicy | None = None,
    request_id: str | None = None,
) -> CheckoutOrchestrator:
    """Get checkout orchestrator instance."""
    return CheckoutOrchestrator(
        cart=cart,
        auth=auth,
        orders=orders,
        payments=payments,
        gateway=gateway,
        shipments=shipments,
        pricing=pricing,
        request_id=request_id,
    )
