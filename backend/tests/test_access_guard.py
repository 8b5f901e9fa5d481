from types import SimpleNamespace

import pytest

from app.services.access_guard import AccessGuard, Caller, is_staff
from app.services.exceptions import Forbidden, Unauthenticated

alice = Caller(id="u-alice", email="alice@example.com")
bob = Caller(id="u-bob", email="bob@example.com")
admin = Caller(id="u-admin", role="admin")
superadmin = Caller(id="u-root", role="superadmin")


def test_staff_roles():
    assert is_staff(admin) and is_staff(superadmin)
    assert not is_staff(alice)
    assert not is_staff(None)


def test_guest_may_create_for_any_order():
    AccessGuard.can_create(None, SimpleNamespace(user_id="u-alice"))
    AccessGuard.can_create(None, SimpleNamespace(user_id=None))


def test_account_holder_creates_only_for_own_or_unowned_orders():
    AccessGuard.can_create(alice, SimpleNamespace(user_id="u-alice"))
    AccessGuard.can_create(alice, SimpleNamespace(user_id=None))
    with pytest.raises(Forbidden):
        AccessGuard.can_create(alice, SimpleNamespace(user_id="u-bob"))


def test_list_scope():
    assert AccessGuard.can_view_list(admin) is None
    assert AccessGuard.can_view_list(alice) == "u-alice"
    with pytest.raises(Unauthenticated):
        AccessGuard.can_view_list(None)


def test_view_one():
    mine = SimpleNamespace(user_id="u-alice")
    AccessGuard.can_view_one(alice, mine)
    AccessGuard.can_view_one(admin, mine)
    with pytest.raises(Forbidden):
        AccessGuard.can_view_one(bob, mine)
    with pytest.raises(Forbidden):
        AccessGuard.can_view_one(alice, SimpleNamespace(user_id=None))
    with pytest.raises(Unauthenticated):
        AccessGuard.can_view_one(None, mine)


@pytest.mark.parametrize("check", [AccessGuard.can_transition, AccessGuard.can_delete])
def test_staff_only_operations(check):
    check(admin)
    check(superadmin)
    with pytest.raises(Forbidden):
        check(alice)
    with pytest.raises(Unauthenticated):
        check(None)


def test_display_name_fallbacks():
    assert Caller(id="1", full_name="Kofi Boateng").display_name == "Kofi Boateng"
    assert Caller(id="1", first_name="Kofi", last_name="Boateng").display_name == "Kofi Boateng"
    assert Caller(id="1", first_name="Kofi").display_name is None
