import pytest

from eventtickets.core.config import Settings
from eventtickets.core.errors import ConstraintViolation, MissingCustomerContact, Timeout, TicketsAlreadyIssued
from eventtickets.db.session import normalize_database_url
from eventtickets.main import status_for
from eventtickets.services.container import build_services
from eventtickets.services.notifications import SmtpEmailSender, UnconfiguredEmailSender
from eventtickets.services.payments import StripeGateway, UnconfiguredGateway
from eventtickets.services.stores import SqlOrderStore, UnavailableOrderStore


def make_settings(**kw):
    base = dict(DATABASE_URL=None, SMTP_HOST="", SMTP_USER="", SMTP_PASS="", STRIPE_SECRET_KEY=None)
    base.update(kw)
    return Settings(**base)


def test_cors_origins_parsing():
    assert make_settings(CORS_ORIGINS="https://a.test, https://b.test").cors_origins == ["https://a.test", "https://b.test"]
    assert make_settings(CORS_ORIGINS='["https://a.test"]').cors_origins == ["https://a.test"]
    assert make_settings(CORS_ORIGINS="").cors_origins == ["http://localhost:3000", "http://127.0.0.1:3000"]


def test_unconfigured_backends_resolve_once_at_startup():
    services = build_services(make_settings())
    assert isinstance(services.orders, UnavailableOrderStore)
    assert isinstance(services.mailer, UnconfiguredEmailSender)
    assert isinstance(services.gateway, UnconfiguredGateway)
    assert services.sessions is None


def test_configured_backends():
    services = build_services(make_settings(
        DATABASE_URL="sqlite://", SMTP_HOST="smtp.test", SMTP_USER="u", SMTP_PASS="p", STRIPE_SECRET_KEY="sk_test_x",
    ))
    assert isinstance(services.orders, SqlOrderStore)
    assert isinstance(services.mailer, SmtpEmailSender)
    assert isinstance(services.gateway, StripeGateway)
    assert services.sessions is not None


def test_postgres_urls_get_a_driver(monkeypatch):
    monkeypatch.setattr("importlib.util.find_spec", lambda name: None)
    assert normalize_database_url("postgres://u:p@db/app") == "postgresql+psycopg://u:p@db/app"
    assert normalize_database_url("postgresql+psycopg://u:p@db/app") == "postgresql+psycopg://u:p@db/app"
    assert normalize_database_url("sqlite://") == "sqlite://"


@pytest.mark.parametrize("exc,code", [
    (TicketsAlreadyIssued("x"), 409),
    (ConstraintViolation("x"), 409),
    (Timeout("x"), 503),
    (MissingCustomerContact("x"), 400),
])
def test_error_status_mapping(exc, code):
    assert status_for(exc) == code
