# tests/test_orders_api.py
import uuid

from pizzeria.models.order import Order
from pizzeria.repositories.order_repo import OrderRepository
from pizzeria.repositories.settings_repo import SettingsRepository
from pizzeria.schemas.order import OrderStatus
from pizzeria.schemas.settings import PromotionSettings

API = "/api/v1"


def enable_delivery_promotion(session):
    SettingsRepository().save_promotion_settings(
        session,
        PromotionSettings(
            promotions_enabled=True,
            delivery_promotion_enabled=True,
            delivery_buy_count=2,
            delivery_get_count=1,
        ),
    )
    session.commit()


# -------- Checkout / cart --------


def test_guest_checkout_applies_promotion(client, session, make_product, make_menu):
    enable_delivery_promotion(session)
    duo = make_menu("Menu Duo", 20.0)
    products = [make_product(f"Pizza {p}", p) for p in (10, 12, 15, 18)]
    drink = make_product("Cola", 2.5, category_slug="drinks", base_type=None)

    resp = client.post(
        f"{API}/orders",
        json={
            "customer_name": "  Jean Client ",
            "customer_email": "client@example.com",
            "customer_phone": "0612345678",
            "delivery_address": "1 rue de la Paix",
            "delivery_method": "delivery",
            "items": [{"product_id": str(p.id), "quantity": 1} for p in products + [drink]],
            "menus": [{"menu_id": str(duo.id), "quantity": 1}],
        },
    )

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["customer_name"] == "Jean Client"
    assert body["status"] == "pending"
    assert body["payment_status"] == "unpaid"
    assert body["order_number"].startswith("CMD")
    assert len(body["order_number"]) == 13
    assert body["subtotal"] == 77.5
    assert body["discount"] == 10
    assert body["delivery_fee"] == 3.5
    assert body["total"] == 71.0
    assert body["user_id"] is None
    assert len(body["items"]) == 6
    menu = next(i for i in body["items"] if i["product_name"] == "Menu Duo")
    assert menu["product_id"] is None
    assert menu["menu_id"] == str(duo.id)
    assert menu["unit_price"] == 20.0


def test_checkout_links_signed_in_customer(client, login, customer, make_product):
    login(customer)
    product = make_product()

    resp = client.post(
        f"{API}/orders",
        json={
            "customer_name": "Jean",
            "delivery_method": "pickup",
            "items": [{"product_id": str(product.id), "quantity": 2}],
        },
    )

    assert resp.status_code == 201
    assert resp.json()["user_id"] == str(customer.id)
    assert resp.json()["delivery_fee"] == 0

    mine = client.get(f"{API}/orders/me")
    assert [o["id"] for o in mine.json()] == [resp.json()["id"]]


def test_delivery_order_needs_address(client, make_product):
    product = make_product()
    resp = client.post(
        f"{API}/orders",
        json={
            "customer_name": "Jean",
            "delivery_method": "delivery",
            "items": [{"product_id": str(product.id), "quantity": 1}],
        },
    )
    assert resp.status_code == 400


def test_unknown_or_inactive_products_are_rejected(client, make_product):
    inactive = make_product(is_active=False)
    resp = client.post(
        f"{API}/cart/quote",
        json={
            "delivery_method": "pickup",
            "items": [
                {"product_id": str(uuid.uuid4()), "quantity": 1},
                {"product_id": str(inactive.id), "quantity": 1},
            ],
        },
    )
    assert resp.status_code == 400
    reasons = [i["reason"] for i in resp.json()["detail"]["items"]]
    assert reasons == ["Product not found", "Product is inactive"]


def test_menu_price_comes_from_the_catalogue(client, make_menu):
    family = make_menu("Menu Family", 32.0)

    resp = client.post(
        f"{API}/orders",
        json={
            "customer_name": "Jean Client",
            "delivery_method": "pickup",
            "menus": [{"menu_id": str(family.id), "unit_price": 0.01, "quantity": 10}],
        },
    )
    assert resp.status_code == 422

    resp = client.post(
        f"{API}/orders",
        json={
            "customer_name": "Jean Client",
            "delivery_method": "pickup",
            "menus": [{"menu_id": str(family.id), "quantity": 10}],
        },
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["total"] == 320.0


def test_unknown_or_inactive_menus_are_rejected(client, make_menu):
    retired = make_menu("Menu Solo", 12.0, is_active=False)
    resp = client.post(
        f"{API}/orders",
        json={
            "customer_name": "Jean Client",
            "delivery_method": "pickup",
            "menus": [
                {"menu_id": str(uuid.uuid4()), "quantity": 1},
                {"menu_id": str(retired.id), "quantity": 1},
            ],
        },
    )
    assert resp.status_code == 400
    reasons = [i["reason"] for i in resp.json()["detail"]["items"]]
    assert reasons == ["Menu not found", "Menu is inactive"]


def test_empty_cart_is_rejected(client):
    resp = client.post(f"{API}/cart/quote", json={"delivery_method": "pickup"})
    assert resp.status_code == 400


def test_quote_includes_variant_surcharge(client, make_product, make_variant):
    product = make_product("Regina", 12.0)
    large = make_variant(product, "Large", 3.5)

    resp = client.post(
        f"{API}/cart/quote",
        json={
            "delivery_method": "delivery",
            "items": [{"product_id": str(product.id), "variant_id": str(large.id), "quantity": 2}],
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["lines"][0]["unit_price"] == 15.5
    assert body["lines"][0]["variant_name"] == "Large"
    assert body["subtotal"] == 31.0
    assert body["promotion"] is None
    assert body["total"] == 34.5


# -------- Next statuses / admin transitions --------


def test_next_statuses(client, login, admin, make_order):
    login(admin)
    order = make_order(status="ready", delivery_method="pickup")

    resp = client.get(f"{API}/orders/{order.id}/next-statuses")

    assert resp.status_code == 200
    assert resp.json()["next_statuses"] == ["completed", "cancelled"]
    assert resp.json()["estimated_remaining_minutes"] == 0


def test_admin_completes_ready_pickup_order(client, login, admin, make_order):
    login(admin)
    order = make_order(status="ready", delivery_method="pickup")

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "completed"})

    assert resp.status_code == 200, resp.text
    assert resp.json()["order"]["status"] == "completed"
    assert "notifications" in resp.json()

    history = client.get(f"{API}/orders/{order.id}/history").json()
    assert [(h["old_status"], h["new_status"], h["automatic"]) for h in history] == [
        ("ready", "completed", False)
    ]
    assert history[0]["triggered_by"] == str(admin.id)


def test_admin_cannot_complete_confirmed_order(client, login, admin, make_order):
    login(admin)
    order = make_order(status="confirmed")

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "completed"})

    assert resp.status_code == 400
    assert "ready" in resp.json()["detail"]


def test_admin_transitions_follow_the_graph(client, login, admin, make_order):
    login(admin)
    order = make_order(status="pending")

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "ready"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Transition pending -> ready is not allowed"


def test_finished_orders_are_immutable(client, login, admin, make_order):
    login(admin)
    order = make_order(status="cancelled")
    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "pending"})
    assert resp.status_code == 400


def test_customers_cannot_change_status(client, login, customer, make_order):
    login(customer)
    order = make_order(status="pending")
    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "cancelled"})
    assert resp.status_code == 403


def test_guests_must_authenticate(client, make_order):
    order = make_order()
    assert client.patch(f"{API}/orders/{order.id}/status", json={"status": "cancelled"}).status_code == 401


def test_unknown_order_is_404(client, login, admin):
    login(admin)
    resp = client.patch(f"{API}/orders/{uuid.uuid4()}/status", json={"status": "cancelled"})
    assert resp.status_code == 404


def test_notification_failure_does_not_fail_transition(
    client, login, admin, make_order, enable_notifications, email_client, sms_client
):
    enable_notifications()
    email_client.send_error = RuntimeError("smtp down")
    login(admin)
    order = make_order(status="confirmed")

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "preparing"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["order"]["status"] == "preparing"
    assert body["notifications"]["email_failed"] == 1
    assert body["notifications"]["sms_sent"] == 1
    assert len(sms_client.sent) == 1


# -------- Courier path --------


def test_courier_takes_and_completes_delivery(client, session, login, courier, make_order):
    login(courier)
    order = make_order(status="ready", delivery_method="delivery")

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "delivering"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["order"]["deliverer_id"] == str(courier.id)

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "completed"})
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "completed"


def test_courier_rules(client, login, courier, make_order):
    login(courier)
    pickup = make_order(status="ready", delivery_method="pickup")
    preparing = make_order(status="preparing")

    assert client.patch(f"{API}/orders/{pickup.id}/status", json={"status": "completed"}).status_code == 400
    assert client.patch(f"{API}/orders/{preparing.id}/status", json={"status": "ready"}).status_code == 400


def test_courier_active_delivery_limit(client, login, courier, make_order):
    login(courier)
    make_order(status="delivering", deliverer_id=courier.id)
    make_order(status="delivering", deliverer_id=courier.id)
    order = make_order(status="ready")

    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "delivering"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Maximum of 2 active deliveries reached"


def test_courier_cannot_complete_someone_elses_delivery(client, login, courier, make_order):
    login(courier)
    order = make_order(status="delivering", deliverer_id=uuid.uuid4())
    resp = client.patch(f"{API}/orders/{order.id}/status", json={"status": "completed"})
    assert resp.status_code == 403


# -------- Compare-and-set --------


def test_status_write_is_compare_and_set(session, make_order):
    repo = OrderRepository()
    order = make_order(status="preparing")

    assert not repo.update_status_if_matches(session, order.id, OrderStatus.CONFIRMED, OrderStatus.CANCELLED)
    assert repo.update_status_if_matches(session, order.id, OrderStatus.PREPARING, OrderStatus.READY)
    session.commit()

    assert session.get(Order, order.id).status == "ready"


# -------- Payment --------


def test_payment_success_confirms_order(client, login, admin, make_order):
    login(admin)
    order = make_order(status="pending")

    resp = client.patch(f"{API}/orders/{order.id}/payment", json={"payment_status": "paid"})

    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "confirmed"
    assert resp.json()["order"]["payment_status"] == "paid"
    history = client.get(f"{API}/orders/{order.id}/history").json()
    assert [(h["new_status"], h["automatic"]) for h in history] == [("confirmed", True)]


def test_payment_failure_then_retry(client, login, admin, make_order):
    login(admin)
    order = make_order(status="pending")

    resp = client.patch(f"{API}/orders/{order.id}/payment", json={"payment_status": "failed"})
    assert resp.json()["order"]["status"] == "payment_failed"

    resp = client.patch(f"{API}/orders/{order.id}/payment", json={"payment_status": "paid"})
    assert resp.json()["order"]["status"] == "confirmed"

    history = client.get(f"{API}/orders/{order.id}/history").json()
    assert [h["new_status"] for h in history] == ["payment_failed", "pending", "confirmed"]


def test_payment_outcome_must_fit_order_status(client, session, login, admin, make_order):
    login(admin)
    confirmed = make_order(status="confirmed")
    finished = make_order(status="completed", payment_status="paid")

    resp = client.patch(f"{API}/orders/{confirmed.id}/payment", json={"payment_status": "failed"})
    assert resp.status_code == 409
    session.expire_all()
    assert session.get(Order, confirmed.id).payment_status == "unpaid"

    resp = client.patch(f"{API}/orders/{finished.id}/payment", json={"payment_status": "failed"})
    assert resp.status_code == 409

    # Late payment on an order already in the kitchen
    resp = client.patch(f"{API}/orders/{confirmed.id}/payment", json={"payment_status": "paid"})
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "confirmed"
    assert resp.json()["order"]["payment_status"] == "paid"
    assert client.get(f"{API}/orders/{confirmed.id}/history").json() == []


# -------- Sweep / dashboard --------


def test_sweep_applies_time_based_transitions_once(client, login, admin, make_order):
    login(admin)
    abandoned = make_order(status="pending", minutes_ago=35)
    acknowledged = make_order(status="confirmed", minutes_ago=6)
    fresh = make_order(status="pending", minutes_ago=1)
    make_order(status="completed", minutes_ago=500)

    first = client.post(f"{API}/orders/sweep").json()

    assert first["evaluated"] == 3
    applied = {(a["order_id"], a["old_status"], a["new_status"]) for a in first["applied"]}
    assert applied == {
        (str(abandoned.id), "pending", "cancelled"),
        (str(acknowledged.id), "confirmed", "preparing"),
    }

    second = client.post(f"{API}/orders/sweep").json()
    assert second["applied"] == []

    assert client.get(f"{API}/orders/{fresh.id}").json()["status"] == "pending"


def test_sweep_is_admin_only(client, login, courier):
    login(courier)
    assert client.post(f"{API}/orders/sweep").status_code == 403


def test_admin_dashboard(client, login, admin, make_order):
    login(admin)
    stuck = make_order(status="pending", minutes_ago=20, total=30.0)
    make_order(status="confirmed", minutes_ago=1, total=12.5)

    resp = client.get(f"{API}/admin/dashboard")

    assert resp.status_code == 200
    body = resp.json()
    assert [(a["type"], a["order_id"]) for a in body["alerts"]] == [("warning", str(stuck.id))]
    assert body["report"]["total_orders"] == 2
    assert body["report"]["status_breakdown"]["pending"] == 1
    assert body["report"]["revenue_by_status"]["confirmed"] == 12.5
    assert body["report"]["status_breakdown"]["cancelled"] == 0


def test_order_listing_filters_by_status(client, login, courier, make_order):
    login(courier)
    ready = make_order(status="ready")
    make_order(status="preparing")

    resp = client.get(f"{API}/orders", params={"status": "ready"})

    assert [o["id"] for o in resp.json()] == [str(ready.id)]


# -------- Settings --------


def test_notification_settings_round_trip(client, login, admin):
    login(admin)
    assert client.get(f"{API}/settings/notifications").json()["notifications_enabled"] is False

    resp = client.put(
        f"{API}/settings/notifications",
        json={"notifications_enabled": True, "smtp_host": "smtp.example.com", "notify_on_ready": False},
    )
    assert resp.status_code == 200

    stored = client.get(f"{API}/settings/notifications").json()
    assert stored["notifications_enabled"] is True
    assert stored["smtp_host"] == "smtp.example.com"
    assert stored["notify_on_ready"] is False
    assert stored["notify_on_confirmed"] is True


def test_invalid_settings_are_rejected(client, login, admin):
    login(admin)
    assert client.put(f"{API}/settings/notifications", json={"smtp_port": 70000}).status_code == 422
    assert client.put(f"{API}/settings/notifications", json={"unknown": 1}).status_code == 422
    assert (
        client.put(
            f"{API}/settings/promotions",
            json={"pickup_promotion_enabled": True, "pickup_get_count": 0},
        ).status_code
        == 422
    )


def test_promotion_settings_affect_quotes(client, login, admin, make_product):
    login(admin)
    product = make_product("Margherita", 9.0)
    client.put(
        f"{API}/settings/promotions",
        json={"promotions_enabled": True, "pickup_promotion_enabled": True},
    )

    resp = client.post(
        f"{API}/cart/quote",
        json={"delivery_method": "pickup", "items": [{"product_id": str(product.id), "quantity": 2}]},
    )

    assert resp.json()["discount"] == 9.0
    assert resp.json()["total"] == 9.0


def test_channel_test_endpoint(client, login, admin, enable_notifications):
    login(admin)
    resp = client.post(f"{API}/settings/notifications/test", json={"channel": "sms"})
    assert resp.json() == {
        "success": False,
        "error": "Notification settings missing",
        "channel": "sms",
        "recipient": None,
    }

    enable_notifications()
    assert client.post(f"{API}/settings/notifications/test", json={"channel": "email"}).json()["success"]


def test_settings_are_admin_only(client, login, customer):
    login(customer)
    assert client.get(f"{API}/settings/notifications").status_code == 403
