import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["plantnet-test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def login(db):
    """Open a TestClient carrying a session cookie for `email`, storing the user with `role` first."""
    clients = []

    def _login(email, role="customer", **fields):
        db["users"].update_one(
            {"email": email},
            {"$set": {"email": email, "role": role, **fields}},
            upsert=True,
        )
        c = TestClient(app)
        c.__enter__()
        clients.append(c)
        response = c.post("/jwt", json={"email": email})
        assert response.status_code == 200
        return c

    yield _login
    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def plant(db):
    def _plant(name="Monstera", price=10, quantity=5, seller="seller@plant.net", **extra):
        doc = {
            "name": name,
            "description": "Big leaves",
            "category": "Indoor",
            "price": price,
            "quantity": quantity,
            "image": f"https://img.example/{name.lower()}.jpg",
            "seller": {"email": seller, "name": "Sam Seller"},
            **extra,
        }
        return str(db["plants"].insert_one(doc).inserted_id)

    return _plant


@pytest.fixture
def payment_intents(monkeypatch):
    import stripe

    created = []

    def fake_create(**kwargs):
        intent = {"id": f"pi_{len(created) + 1}", "client_secret": f"pi_{len(created) + 1}_secret", **kwargs}
        created.append(intent)
        return intent

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    return created


class FakeSMTP:
    sent = []
    fail = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        if FakeSMTP.fail:
            import smtplib
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def smtp(monkeypatch):
    import mailer

    FakeSMTP.sent = []
    FakeSMTP.fail = False
    monkeypatch.setattr(mailer, "MAIL_USERNAME", "shop@plant.net")
    monkeypatch.setattr(mailer, "MAIL_PASSWORD", "app-password")
    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP
