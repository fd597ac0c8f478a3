# pizzeria/services/notification_content.py
"""
Message texts for order status notifications.

Three variants per transition:
  - email body (long form, signed by the restaurant)
  - SMS body (one sentence)
  - admin alert body (confirmed / cancelled / payment_failed only)
"""
import html
import logging
from typing import assert_never

from pizzeria.schemas.notification import NotificationChannel, NotificationMessage
from pizzeria.schemas.order import (
    STATUS_INFO,
    DeliveryMethod,
    OrderSnapshot,
    OrderStatus,
)

logger = logging.getLogger(__name__)

S = OrderStatus

# Badge colours for the HTML email: (background, text)
BADGE_COLORS: dict[str, tuple[str, str]] = {
    "yellow": ("#FEF3C7", "#92400E"),
    "blue": ("#DBEAFE", "#1E40AF"),
    "purple": ("#EDE9FE", "#6D28D9"),
    "green": ("#D1FAE5", "#047857"),
    "emerald": ("#D1FAE5", "#047857"),
    "orange": ("#FED7AA", "#C2410C"),
    "red": ("#FEE2E2", "#DC2626"),
}
DEFAULT_BADGE_COLORS = ("#F3F4F6", "#374151")


class NotificationContentGenerator:
    """
    Renders notification texts for one restaurant.

    Usage:
        content = NotificationContentGenerator("Bella Pizza", "EUR")
        messages = content.build_messages(order, OrderStatus.READY, "admin@...")
    """

    def __init__(self, restaurant_name: str, currency: str = "EUR"):
        self.restaurant_name = restaurant_name
        self.currency = currency

    # ---- helpers ----

    def _money(self, amount: float) -> str:
        return f"{amount:.2f} {self.currency}"

    @staticmethod
    def _method_label(order: OrderSnapshot) -> str:
        if order.delivery_method == DeliveryMethod.DELIVERY:
            return "Delivery"
        return "Click & Collect"

    @property
    def _signature(self) -> str:
        return f"The {self.restaurant_name} team"

    # ---- customer email ----

    def email_body(self, order: OrderSnapshot, status: OrderStatus) -> str:
        number = order.order_number
        is_pickup = order.delivery_method == DeliveryMethod.PICKUP

        match status:
            case S.CONFIRMED:
                return (
                    f"Hello! Your order #{number} has been confirmed and sent to the kitchen.\n\n"
                    f"Order details:\n"
                    f"- Method: {self._method_label(order)}\n"
                    f"- Total: {self._money(order.total)}\n\n"
                    f"Our chefs are now preparing your pizzas with care. Thank you for your trust!\n\n"
                    f"{self._signature}"
                )
            case S.PREPARING:
                return (
                    f"Good news! Your order #{number} is now being prepared.\n\n"
                    f"Our chefs have started on your pizzas with the freshest ingredients. "
                    f"We will let you know as soon as it is ready.\n\n"
                    f"{self._signature}"
                )
            case S.READY if is_pickup:
                return (
                    f"Your order #{number} is ready!\n\n"
                    f"You can now collect it at the restaurant. "
                    f"Please bring your order number with you.\n\n"
                    f"Thank you and see you soon!\n"
                    f"{self._signature}"
                )
            case S.READY:
                return (
                    f"Your order #{number} is ready and will be delivered shortly!\n\n"
                    f"Our courier leaves in a few minutes to bring you your pizzas piping hot.\n\n"
                    f"{self._signature}"
                )
            case S.DELIVERING:
                return (
                    f"Your order #{number} is on its way!\n\n"
                    f"Our courier has left and will be with you in about 20-30 minutes.\n\n"
                    f"{self._signature}"
                )
            case S.COMPLETED:
                verb = "collected" if is_pickup else "delivered"
                return (
                    f"Your order #{number} has been {verb} successfully!\n\n"
                    f"We hope you enjoyed your pizzas. "
                    f"Feel free to leave us a review and come back soon!\n\n"
                    f"Thank you for your trust,\n"
                    f"{self._signature}"
                )
            case S.CANCELLED:
                return (
                    f"Your order #{number} has been cancelled.\n\n"
                    f"We apologise for the inconvenience. "
                    f"If you have any questions or would like to order again, please contact us.\n\n"
                    f"{self._signature}"
                )
            case S.PAYMENT_FAILED:
                return (
                    f"There was a problem with the payment for your order #{number}.\n\n"
                    f"The payment could not be processed. "
                    f"Please check your card details or try another payment method. "
                    f"You can also contact us for help.\n\n"
                    f"{self._signature}"
                )
            case S.PENDING:
                info = STATUS_INFO[status]
                return (
                    f"Update for your order #{number}: {info.label}\n\n"
                    f"{info.description}\n\n"
                    f"{self._signature}"
                )
            case _:
                assert_never(status)

    # ---- customer SMS ----

    def sms_body(self, order: OrderSnapshot, status: OrderStatus) -> str:
        name = self.restaurant_name
        number = order.order_number

        match status:
            case S.CONFIRMED:
                return f"{name}: Your order #{number} is confirmed! Preparation is starting. Thank you!"
            case S.PREPARING:
                return f"{name}: Your order #{number} is being prepared. Almost ready!"
            case S.READY if order.delivery_method == DeliveryMethod.PICKUP:
                return f"{name}: Your order #{number} is ready! You can come and collect it."
            case S.READY:
                return f"{name}: Your order #{number} is ready and will be delivered shortly!"
            case S.DELIVERING:
                return f"{name}: Your order #{number} is on its way! Arriving soon."
            case S.COMPLETED:
                return f"{name}: Your order #{number} has been delivered. Thank you and see you soon!"
            case S.CANCELLED:
                return f"{name}: Your order #{number} has been cancelled. Contact us for more information."
            case S.PAYMENT_FAILED:
                return f"{name}: Payment problem with your order #{number}. Please contact us."
            case S.PENDING:
                return f"{name}: Update for your order #{number}: {STATUS_INFO[status].label}"
            case _:
                assert_never(status)

    # ---- admin alert ----

    def admin_body(self, order: OrderSnapshot, status: OrderStatus) -> str | None:
        """Internal alert text; None for statuses the admin is not told about."""
        if order.customer_email:
            customer = f"Customer: {order.customer_email}"
        else:
            customer = f"Order: {order.order_number}"

        match status:
            case S.CONFIRMED:
                return (
                    f"NEW CONFIRMED ORDER\n\n"
                    f"Order: #{order.order_number}\n"
                    f"{customer}\n"
                    f"Phone: {order.customer_phone or 'Not provided'}\n"
                    f"Method: {self._method_label(order)}\n"
                    f"Total: {self._money(order.total)}\n\n"
                    f"Please prepare this order as soon as possible!"
                )
            case S.CANCELLED:
                return (
                    f"ORDER CANCELLED\n\n"
                    f"Order: #{order.order_number}\n"
                    f"{customer}\n"
                    f"Total: {self._money(order.total)}\n\n"
                    f"Please check the reason for the cancellation."
                )
            case S.PAYMENT_FAILED:
                return (
                    f"PAYMENT FAILED\n\n"
                    f"Order: #{order.order_number}\n"
                    f"{customer}\n"
                    f"Total: {self._money(order.total)}\n\n"
                    f"The payment failed. Contact the customer if needed."
                )
            case S.PENDING | S.PREPARING | S.READY | S.DELIVERING | S.COMPLETED:
                return None
            case _:
                assert_never(status)

    # ---- assembly ----

    def build_messages(
        self,
        order: OrderSnapshot,
        status: OrderStatus,
        admin_email: str | None = None,
    ) -> list[NotificationMessage]:
        """
        Messages for one transition: customer email and SMS when the
        contact is on file, admin email when relevant and configured.
        An empty list is a valid outcome.
        """
        messages: list[NotificationMessage] = []

        if order.customer_email:
            messages.append(
                NotificationMessage(
                    channel=NotificationChannel.EMAIL,
                    recipient=order.customer_email,
                    body=self.email_body(order, status),
                    order_id=order.id,
                    status=status,
                )
            )

        if order.customer_phone:
            messages.append(
                NotificationMessage(
                    channel=NotificationChannel.SMS,
                    recipient=order.customer_phone,
                    body=self.sms_body(order, status),
                    order_id=order.id,
                    status=status,
                )
            )

        admin_text = self.admin_body(order, status)
        if admin_text and admin_email:
            messages.append(
                NotificationMessage(
                    channel=NotificationChannel.EMAIL,
                    recipient=admin_email,
                    body=admin_text,
                    order_id=order.id,
                    status=status,
                    audience="admin",
                )
            )

        logger.info(
            "%d notifications generated for order %s (%s)",
            len(messages),
            order.id,
            status.value,
        )
        return messages

    # ---- email envelope ----

    def email_subject(self, status: OrderStatus, sender_name: str | None = None) -> str:
        return f"{sender_name or self.restaurant_name} - {STATUS_INFO[status].label}"

    def email_html(self, message: NotificationMessage, sender_name: str | None = None) -> str:
        """
        HTML alternative of an email message: header, status badge, body.
        """
        info = STATUS_INFO[message.status]
        background, color = BADGE_COLORS.get(info.color, DEFAULT_BADGE_COLORS)
        name = html.escape(sender_name or self.restaurant_name)
        body = html.escape(message.body).replace("\n", "<br>")

        return (
            "<!DOCTYPE html>"
            '<html><head><meta charset="utf-8">'
            f"<title>{html.escape(info.label)}</title></head>"
            '<body style="font-family: Segoe UI, Tahoma, sans-serif; background-color: #f5f5f5; padding: 20px;">'
            '<div style="max-width: 600px; margin: 0 auto; background-color: white; border-radius: 10px;">'
            '<div style="background: #EA580C; color: white; padding: 30px 20px; text-align: center;">'
            f"<h1>{name}</h1></div>"
            '<div style="padding: 30px;">'
            f'<div style="display: inline-block; padding: 8px 16px; border-radius: 20px; '
            f'background-color: {background}; color: {color}; font-weight: 600;">'
            f"{html.escape(info.label)}</div>"
            f'<div style="font-size: 16px; line-height: 1.6; color: #374151; margin-top: 20px;">{body}</div>'
            "</div>"
            '<div style="background-color: #F9FAFB; padding: 20px; text-align: center; color: #6B7280;">'
            f"<p>Thank you for your trust!</p><p>The {name} team</p>"
            "</div></div></body></html>"
        )
