"""Converters from domain objects to response schemas."""

from storefront.api.schemas import (
    AddressSchema,
    CartLineSchema,
    CartResponse,
    MoneySchema,
    OrderResponse,
    OrderSummarySchema,
    OrderTotalsSchema,
    ProductListResponse,
    ProductSchema,
    StatusPresentationSchema,
    TrackingActivitySchema,
    TrackingSchema,
)
from storefront.application.catalog_service import ProductPageResult
from storefront.application.presentation import status_presentation
from storefront.domain.entities import Cart, CartLine, Order
from storefront.domain.state_machines import OrderStatus
from storefront.domain.value_objects import Address, Money, Product, TrackingSnapshot


def money_to_schema(money: Money) -> MoneySchema:
    return MoneySchema(
        amount=money.amount_minor,
        currency=money.currency,
        display=f"{money.to_decimal():.2f}",
    )


def address_to_schema(address: Address) -> AddressSchema:
    return AddressSchema(**address.to_dict())


def line_to_schema(line: CartLine) -> CartLineSchema:
    return CartLineSchema(
        product_id=line.product_id,
        product_name=line.product_name,
        image_url=line.image_url,
        quantity=line.quantity,
        unit_price=money_to_schema(line.unit_price),
        line_total=money_to_schema(line.line_total),
    )


def cart_to_response(cart: Cart) -> CartResponse:
    """Convert Cart to CartResponse."""
    return CartResponse(
        items=[line_to_schema(line) for line in cart.lines.values()],
        item_count=cart.item_count,
        subtotal=money_to_schema(cart.subtotal),
        shipping_address=(
            address_to_schema(cart.shipping_address) if cart.shipping_address else None
        ),
    )


def presentation_schema(status: OrderStatus) -> StatusPresentationSchema:
    presentation = status_presentation(status)
    return StatusPresentationSchema(icon=presentation.icon, color=presentation.color)


def order_to_response(order: Order) -> OrderResponse:
    """Convert Order to OrderResponse."""
    totals = order.totals
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        customer_email=order.customer_email,
        customer_name=order.customer_name,
        shipping_address=address_to_schema(order.shipping_address),
        items=[line_to_schema(line) for line in order.items],
        totals=OrderTotalsSchema(
            subtotal=money_to_schema(totals.subtotal),
            shipping=money_to_schema(totals.shipping),
            tax=money_to_schema(totals.tax),
            discount=money_to_schema(totals.discount),
            total=money_to_schema(totals.total),
        ),
        status=order.status.value,
        status_presentation=presentation_schema(order.status),
        payment_method=order.payment_method.value if order.payment_method else None,
        payment_status=order.payment_status.value if order.payment_status else None,
        payment_gateway_order_id=order.payment_gateway_order_id,
        shipment_id=order.shipment_id,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def order_to_summary(order: Order) -> OrderSummarySchema:
    return OrderSummarySchema(
        id=order.id,
        status=order.status.value,
        status_presentation=presentation_schema(order.status),
        payment_method=order.payment_method.value if order.payment_method else None,
        payment_status=order.payment_status.value if order.payment_status else None,
        item_count=order.item_count,
        total=money_to_schema(order.totals.total),
        created_at=order.created_at,
    )


def tracking_to_schema(tracking: TrackingSnapshot) -> TrackingSchema:
    return TrackingSchema(
        shipment_id=tracking.shipment_id,
        current_status=tracking.current_status,
        status_date=tracking.status_date,
        activities=[
            TrackingActivitySchema(date=a.date, activity=a.activity, location=a.location)
            for a in tracking.activities
        ],
    )


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(
        id=product.id,
        name=product.name,
        description=product.description,
        price=money_to_schema(product.price),
        image_url=product.image_url,
        category=product.category.value,
        stock_quantity=product.stock_quantity,
        in_stock=product.in_stock,
        is_featured=product.is_featured,
        created_at=product.created_at,
    )


def product_page_to_response(page: ProductPageResult) -> ProductListResponse:
    return ProductListResponse(
        products=[product_to_schema(p) for p in page.products],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )
