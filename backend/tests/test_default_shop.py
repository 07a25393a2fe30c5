# Overview: Pytest coverage for default-shop selection and registration.

import pytest

from billing.errors import BillingError, ConflictError
from billing.models import Shop, User, UserShop
from billing.permissions import ShopRole
from billing.services import auth_service, default_shop_service, user_shop_service
from billing.services.auth_service import PasswordValidationError, register_user


class TestSetAndGetDefault:

    def test_set_then_get_returns_shop(self, db_session, owner, make_shop):
        first = make_shop(owner, name="First Shop")
        second = make_shop(owner, name="Second Shop")

        default_shop_service.set_default(owner.id, second.id)
        assert default_shop_service.get_default(owner.id).id == second.id

        default_shop_service.set_default(owner.id, first.id)
        assert default_shop_service.get_default(owner.id).id == first.id

    def test_never_set_is_none(self, db_session, owner, shop):
        assert default_shop_service.get_default(owner.id) is None

    def test_set_without_edge_fails_and_keeps_prior(self, db_session, owner, shop, make_user, make_shop):
        other = make_user("other_owner")
        foreign = make_shop(other, name="Foreign Shop")
        default_shop_service.set_default(owner.id, shop.id)

        with pytest.raises(BillingError) as exc_info:
            default_shop_service.set_default(owner.id, foreign.id)
        assert exc_info.value.code == "SHOP_UPDATE_ERROR"

        with pytest.raises(BillingError) as missing:
            default_shop_service.set_default(owner.id, 9999)
        assert missing.value.code == "SHOP_UPDATE_ERROR"

        assert default_shop_service.get_default(owner.id).id == shop.id

    def test_dangling_pointer_resolves_to_none(self, db_session, owner, shop, make_user):
        member = make_user("member_user")
        user_shop_service.associate_user(member.id, shop.id, ShopRole.VIEWER)
        default_shop_service.set_default(member.id, shop.id)

        user_shop_service.remove_user(owner.id, shop.id, member.id)

        assert default_shop_service.get_default(member.id) is None
        # pointer itself is left alone
        assert db_session.get(User, member.id).default_shop_id == shop.id


class TestRegistration:

    def test_register_creates_default_owned_shop(self, db_session):
        user = register_user("alice", "secret123", "alice@example.com")

        shop = default_shop_service.get_default(user.id)
        assert shop is not None
        assert shop.name == "alice's Shop"
        edge = db_session.query(UserShop).filter_by(user_id=user.id, shop_id=shop.id).one()
        assert edge.role == ShopRole.OWNER

    def test_duplicate_username_or_email(self, db_session):
        register_user("alice", "secret123", "alice@example.com")

        with pytest.raises(ConflictError) as by_name:
            register_user("alice", "another1")
        assert by_name.value.code == "USER_EXISTS"

        with pytest.raises(ConflictError):
            register_user("alice2", "another1", "ALICE@example.com")

    def test_rejects_short_credentials(self, db_session):
        with pytest.raises(PasswordValidationError):
            register_user("bobby", "12345")
        with pytest.raises(BillingError):
            register_user("bob", "secret123")
        assert db_session.query(User).count() == 0

    def test_default_shop_failure_does_not_fail_registration(self, db_session, monkeypatch):
        def broken(user):
            raise RuntimeError("shop storage unavailable")

        monkeypatch.setattr(auth_service, "create_default_shop", broken)

        user = register_user("carol", "secret123")

        assert db_session.get(User, user.id) is not None
        assert user.default_shop_id is None
        assert db_session.query(Shop).count() == 0

    def test_ensure_default_shop_is_the_retry(self, db_session, monkeypatch):
        def broken(user):
            raise RuntimeError("shop storage unavailable")

        monkeypatch.setattr(auth_service, "create_default_shop", broken)
        user = register_user("dave", "secret123")
        monkeypatch.undo()

        shop = default_shop_service.ensure_default_shop(user.id)
        assert shop is not None
        assert default_shop_service.get_default(user.id).id == shop.id

        # idempotent
        assert default_shop_service.ensure_default_shop(user.id) is None
        assert db_session.query(Shop).count() == 1

    def test_ensure_default_shop_skips_users_with_shops(self, db_session, owner, shop):
        assert default_shop_service.ensure_default_shop(owner.id) is None
        assert db_session.query(Shop).count() == 1
