import os
import tempfile
import uuid

_tmp = tempfile.mkdtemp(prefix="returns_desk_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["LOCKS_DIR"] = os.path.join(_tmp, "locks")
os.environ["EMAIL_BACKEND"] = "mock"
os.environ["RETURN_EMAILS_ENABLED"] = "true"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.adapters.email import MockEmailAdapter  # noqa: E402
from app.api.deps import get_notifier  # noqa: E402
from app.db import SessionLocal, init_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.order import Order, OrderItem  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.access_guard import Caller  # noqa: E402
from app.services.notifications import NotificationDispatcher  # noqa: E402
from app.utils.security import create_access_token  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def setup_db():
    init_db()
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def mailer():
    return MockEmailAdapter()


@pytest.fixture
def notifier(mailer):
    return NotificationDispatcher(mailer)


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    # no context manager: the lifespan (and its scheduler) stays off in tests
    c = TestClient(app)
    try:
        yield c
    finally:
        app.dependency_overrides.pop(get_notifier, None)


def unique_number(prefix: str = "ORD") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


@pytest.fixture
def make_user():
    def _make(role: str = "customer", **kw) -> User:
        s = SessionLocal()
        try:
            user = User(
                email=kw.pop("email", f"{uuid.uuid4().hex[:8]}@example.com"),
                role=role,
                **kw,
            )
            s.add(user)
            s.commit()
            s.refresh(user)
            s.expunge(user)
            return user
        finally:
            s.close()

    return _make


@pytest.fixture
def make_order():
    def _make(
        order_number=None,
        user=None,
        status="delivered",
        shipping_address=None,
        items=(("Kente Scarf", 1, 2500),),
    ) -> Order:
        s = SessionLocal()
        try:
            order = Order(
                order_number=order_number or unique_number(),
                user_id=user.id if user is not None else None,
                status=status,
                shipping_address=shipping_address,
            )
            total = 0
            for name, qty, price in items:
                order.items.append(
                    OrderItem(
                        product_name=name,
                        quantity=qty,
                        unit_price_cents=price,
                        total_price_cents=qty * price,
                    )
                )
                total += qty * price
            order.total_cents = total
            s.add(order)
            s.commit()
            s.refresh(order)
            s.expunge(order)
            return order
        finally:
            s.close()

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(first_name="Ama", last_name="Mensah")


@pytest.fixture
def staff(make_user):
    return make_user(role="admin", full_name="Desk Admin")


def caller_of(user: User) -> Caller:
    return Caller.from_user(user)


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
