from decimal import Decimal

from conftest import auth_headers, checkout_event, published_event


def submit(client, user="organizer-1", **overrides):
    body = {
        "title": "Harbour Lights",
        "description": "Open-air concert.",
        "date": "2026-12-01T19:00:00Z",
        "venue": "Pier 4",
        "ticket_types": [{"name": "Standard", "price": "25.00", "quantity_available": 200}],
    }
    body.update(overrides)
    return client.post("/events", json=body, headers=auth_headers(user))


def test_submit_requires_auth(client):
    r = client.post("/events", json={"title": "Harbour Lights"})
    assert r.status_code == 401
    r = client.post("/events", json={"title": "Harbour Lights"}, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_submitted_event_is_a_private_draft(client):
    r = submit(client)
    assert r.status_code == 201, r.text
    ev = r.json()
    assert ev["status"] == "draft"
    assert ev["organizer_id"] == "organizer-1"
    assert ev["date"] == "2026-12-01T19:00:00"
    assert ev["ticket_types"][0]["price"] == 25.0

    assert client.get("/events").json() == []
    assert client.get(f"/events/{ev['id']}").status_code == 404
    mine = client.get("/events/mine", headers=auth_headers("organizer-1")).json()
    assert [e["id"] for e in mine] == [ev["id"]]
    assert client.get("/events/mine", headers=auth_headers("someone-else")).json() == []


def test_only_the_organizer_can_publish(client):
    ev = submit(client).json()
    r = client.post(f"/events/{ev['id']}/publish", headers=auth_headers("someone-else"))
    assert r.status_code == 403

    r = client.post(f"/events/{ev['id']}/publish", headers=auth_headers("organizer-1"))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "published"
    assert [e["id"] for e in client.get("/events").json()] == [ev["id"]]
    assert client.get(f"/events/{ev['id']}").json()["title"] == "Harbour Lights"


def test_publish_needs_a_ticket_type(client):
    ev = submit(client, ticket_types=[]).json()
    r = client.post(f"/events/{ev['id']}/publish", headers=auth_headers("organizer-1"))
    assert r.status_code == 400


def test_publish_unknown_event(client):
    assert client.post("/events/missing/publish", headers=auth_headers("organizer-1")).status_code == 404


def test_invalid_ticket_price_is_rejected(client):
    r = submit(client, ticket_types=[{"name": "Standard", "price": "-1"}])
    assert r.status_code == 422


def test_ticket_types_listing(client, services):
    ev = published_event(services)
    other = published_event(services, title="Other")
    all_types = client.get("/ticket-types").json()
    assert len(all_types) == 2
    scoped = client.get("/ticket-types", params={"event_id": ev.id}).json()
    assert [t["event_id"] for t in scoped] == [ev.id]
    assert other.id not in {t["event_id"] for t in scoped}


def test_checkout_creates_pending_order_priced_from_catalog(client, services, gateway):
    ev = published_event(services, price=Decimal("25.00"))
    tt = ev.ticket_types[0]
    r = client.post("/checkout", json={
        "event_id": ev.id, "ticket_type_id": tt.id, "quantity": 2, "customer_email": "buyer@example.com",
    })
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["url"].startswith("https://checkout.test/pay/")
    assert body["amount"] == 5000

    [call] = gateway.calls
    assert call["unit_amount"] == 2500
    assert call["quantity"] == 2
    assert call["metadata"]["eventId"] == ev.id
    assert call["metadata"]["quantity"] == "2"
    assert call["success_url"] == "https://tickets.test/success?session_id={CHECKOUT_SESSION_ID}"

    order = services.orders.find_by_id(body["order_id"])
    assert order.payment_status == "pending"
    assert order.total_amount == Decimal("50.00")


def test_checkout_then_webhook_completes_same_order(client, services, post_webhook, mailer):
    ev = published_event(services)
    r = client.post("/checkout", json={"event_id": ev.id, "ticket_type_id": ev.ticket_types[0].id, "quantity": 2})
    body = r.json()
    metadata = {"eventId": ev.id, "eventName": ev.title, "quantity": "2", "ticketType": "Standard"}
    assert post_webhook(checkout_event(body["session_id"], 5000, metadata=metadata)).status_code == 200

    order = services.orders.find_by_id(body["order_id"])
    assert order.payment_status == "completed"
    assert order.customer_email == "buyer@example.com"
    assert len(services.tickets.find_tickets_by_order_id(order.id)) == 2
    assert mailer.confirmations[0].event_venue == "Blue Note Hall"


def test_checkout_rejects_unknown_or_mismatched_ticket_types(client, services):
    ev = published_event(services)
    other = published_event(services, title="Other")
    assert client.post("/checkout", json={"event_id": "missing", "ticket_type_id": 1}).status_code == 404
    r = client.post("/checkout", json={"event_id": ev.id, "ticket_type_id": other.ticket_types[0].id})
    assert r.status_code == 400
    r = client.post("/checkout", json={"event_id": ev.id, "ticket_type_id": ev.ticket_types[0].id, "quantity": 101})
    assert r.status_code == 422


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["database"] is True
