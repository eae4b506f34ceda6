from conftest import checkout_event


def fulfilled_order(post_webhook, services, sid="cs_lookup_1", email="buyer@example.com"):
    assert post_webhook(checkout_event(sid, 4500, email=email)).status_code == 200
    return services.orders.find_by_session_id(sid)


def test_lookup_by_email(client, post_webhook, services):
    order = fulfilled_order(post_webhook, services)
    r = client.post("/tickets/lookup", json={"email": "Buyer@Example.com"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["order_id"] == order.id
    assert body["event_title"] == "Jazz Night"
    assert body["payment_status"] == "completed"
    assert body["total_amount"] == 45.0
    assert len(body["tickets"]) == 2
    assert body["tickets"][0]["qr_code_data"].startswith("data:image/png;base64,")


def test_lookup_by_order_id_query(client, post_webhook, services):
    order = fulfilled_order(post_webhook, services)
    r = client.get("/tickets/lookup", params={"orderId": order.id})
    assert r.status_code == 200
    assert r.json()["order_id"] == order.id


def test_lookup_requires_email_or_order(client):
    assert client.post("/tickets/lookup", json={}).status_code == 400
    assert client.get("/tickets/lookup", params={"email": "  "}).status_code == 400


def test_lookup_not_found(client):
    r = client.post("/tickets/lookup", json={"email": "nobody@example.com"})
    assert r.status_code == 404
    assert r.json()["tickets"] == []


def test_get_ticket_and_check_in_once(client, post_webhook, services):
    order = fulfilled_order(post_webhook, services)
    code = services.tickets.find_tickets_by_order_id(order.id)[0].ticket_code

    r = client.get(f"/tickets/{code}")
    assert r.status_code == 200
    assert r.json()["is_used"] is False
    assert r.json()["order_id"] == order.id

    r = client.post(f"/tickets/{code.lower()}/check-in")
    assert r.status_code == 200, r.text
    assert r.json()["is_used"] is True
    assert r.json()["used_at"]

    assert client.post(f"/tickets/{code}/check-in").status_code == 409
    assert client.post("/tickets/TICKET-20260101-ZZZZZZZZ/check-in").status_code == 404
    assert client.get("/tickets/TICKET-20260101-ZZZZZZZZ").status_code == 404


def test_resend_confirmation_recovers_failed_email(client, post_webhook, services, mailer):
    mailer.fail = True
    order = fulfilled_order(post_webhook, services, sid="cs_resend_1")
    assert services.orders.find_by_id(order.id).payment_status == "completed_email_failed"

    mailer.fail = False
    r = client.post(f"/orders/{order.id}/resend-confirmation")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["email_sent"] is True
    assert body["payment_status"] == "completed"
    assert len(body["ticket_codes"]) == 2
    assert mailer.confirmations[-1].event_title == "Jazz Night"


def test_resend_failure_annotates_completed_order(client, post_webhook, services, mailer):
    order = fulfilled_order(post_webhook, services, sid="cs_resend_2")
    mailer.fail = True
    r = client.post(f"/orders/{order.id}/resend-confirmation")
    assert r.status_code == 200
    assert r.json()["email_sent"] is False
    assert services.orders.find_by_id(order.id).payment_status == "completed_email_failed"


def test_resend_unknown_order(client):
    r = client.post("/orders/missing/resend-confirmation")
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"
