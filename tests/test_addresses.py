"""Tests for the address book."""

import uuid

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError

from buildsetu.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from buildsetu.models import Address
from buildsetu.policy import Actor
from buildsetu.pricing import LineRequest
from buildsetu.services import addresses as address_book
from buildsetu.services import orders as ledger

FIELDS = {
    "label": "Home",
    "line1": "123 Main Street",
    "city": "Gwalior",
    "state": "MP",
    "pincode": "474001",
}


def defaults_for(db, user):
    return (
        db.query(Address)
        .filter(Address.user_id == user.id, Address.is_default == True)  # noqa: E712
        .all()
    )


class TestCreateAddress:
    def test_first_address_becomes_default(self, db, buyer):
        address = address_book.create_address(db, Actor.from_user(buyer), FIELDS)
        assert address.is_default is True

    def test_second_address_is_not_default_unless_asked(self, db, buyer):
        actor = Actor.from_user(buyer)
        first = address_book.create_address(db, actor, FIELDS)
        second = address_book.create_address(db, actor, {**FIELDS, "label": "Work"})

        assert second.is_default is False
        assert [a.id for a in defaults_for(db, buyer)] == [first.id]

    def test_new_default_clears_previous(self, db, buyer):
        actor = Actor.from_user(buyer)
        address_book.create_address(db, actor, FIELDS)
        address_book.create_address(db, actor, {**FIELDS, "label": "Work"})
        site = address_book.create_address(db, actor, {**FIELDS, "label": "Site", "is_default": True})

        assert [a.id for a in defaults_for(db, buyer)] == [site.id]

    def test_default_is_per_user(self, db, buyer, other_buyer):
        mine = address_book.create_address(db, Actor.from_user(buyer), {**FIELDS, "is_default": True})
        theirs = address_book.create_address(db, Actor.from_user(other_buyer), {**FIELDS, "is_default": True})

        assert [a.id for a in defaults_for(db, buyer)] == [mine.id]
        assert [a.id for a in defaults_for(db, other_buyer)] == [theirs.id]

    def test_database_rejects_two_defaults(self, db, buyer, make_address):
        make_address(buyer, is_default=True)
        with pytest.raises(IntegrityError):
            make_address(buyer, label="Work", is_default=True)
        db.rollback()

    def test_lost_default_race_is_a_conflict(self, db, buyer, make_address, monkeypatch):
        make_address(buyer, is_default=True)
        # The other writer's default lands after ours was cleared
        monkeypatch.setattr(address_book, "_clear_other_defaults", lambda *args, **kwargs: 0)

        with pytest.raises(ConflictError) as exc_info:
            address_book.create_address(db, Actor.from_user(buyer), {**FIELDS, "is_default": True})

        assert exc_info.value.reason == "default_conflict"

    def test_other_integrity_errors_propagate(self, db, buyer):
        fields = {k: v for k, v in FIELDS.items() if k != "line1"}

        with pytest.raises(IntegrityError):
            address_book.create_address(db, Actor.from_user(buyer), fields)

        assert db.query(Address).count() == 0


class TestUpdateAddress:
    def test_setting_default_moves_the_flag(self, db, buyer):
        actor = Actor.from_user(buyer)
        first = address_book.create_address(db, actor, FIELDS)
        second = address_book.create_address(db, actor, {**FIELDS, "label": "Work"})

        address_book.update_address(db, actor, second.id, {"is_default": True})

        db.expire_all()
        assert [a.id for a in defaults_for(db, buyer)] == [second.id]
        assert db.get(Address, first.id).is_default is False

    def test_set_default_shortcut(self, db, buyer):
        actor = Actor.from_user(buyer)
        address_book.create_address(db, actor, FIELDS)
        work = address_book.create_address(db, actor, {**FIELDS, "label": "Work"})

        address_book.set_default_address(db, actor, work.id)

        assert [a.id for a in defaults_for(db, buyer)] == [work.id]

    def test_clearing_default_is_allowed(self, db, buyer):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, FIELDS)

        address_book.update_address(db, actor, home.id, {"is_default": False})

        assert defaults_for(db, buyer) == []

    def test_updates_fields(self, db, buyer):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, {**FIELDS, "line2": "Near temple"})

        updated = address_book.update_address(db, actor, home.id, {"city": "Indore", "line2": None})

        assert updated.city == "Indore"
        assert updated.line2 is None
        assert updated.label == "Home"

    def test_empty_update_rejected(self, db, buyer):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, FIELDS)
        with pytest.raises(ValidationError):
            address_book.update_address(db, actor, home.id, {})

    def test_non_owner_cannot_update(self, db, buyer, other_buyer):
        home = address_book.create_address(db, Actor.from_user(buyer), FIELDS)
        with pytest.raises(AuthorizationError):
            address_book.update_address(db, Actor.from_user(other_buyer), home.id, {"city": "Indore"})


class TestReadAddress:
    def test_list_returns_only_own_default_first(self, db, buyer, other_buyer):
        actor = Actor.from_user(buyer)
        address_book.create_address(db, actor, FIELDS)
        work = address_book.create_address(db, actor, {**FIELDS, "label": "Work", "is_default": True})
        address_book.create_address(db, Actor.from_user(other_buyer), FIELDS)

        listed = address_book.list_addresses(db, actor)

        assert len(listed) == 2
        assert listed[0].id == work.id

    def test_other_buyer_is_denied(self, db, buyer, other_buyer):
        home = address_book.create_address(db, Actor.from_user(buyer), FIELDS)
        with pytest.raises(AuthorizationError):
            address_book.get_address(db, Actor.from_user(other_buyer), home.id)

    def test_admin_is_denied_too(self, db, buyer, admin):
        home = address_book.create_address(db, Actor.from_user(buyer), FIELDS)
        with pytest.raises(AuthorizationError):
            address_book.get_address(db, Actor.from_user(admin), home.id)

    def test_missing_address(self, db, buyer):
        with pytest.raises(NotFoundError):
            address_book.get_address(db, Actor.from_user(buyer), uuid.uuid4())


class TestDeleteAddress:
    def test_delete_unreferenced(self, db, buyer):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, FIELDS)
        home_id = home.id

        address_book.delete_address(db, actor, home_id)

        assert db.get(Address, home_id) is None

    def test_delete_default_promotes_another(self, db, buyer):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, FIELDS)
        work = address_book.create_address(db, actor, {**FIELDS, "label": "Work"})

        address_book.delete_address(db, actor, home.id)

        assert [a.id for a in defaults_for(db, buyer)] == [work.id]

    def test_delete_referenced_by_order_conflicts(self, db, buyer, make_product):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, FIELDS)
        product = make_product()
        ledger.create_order(db, actor, home.id, [LineRequest(product.id, 1)])

        with pytest.raises(ConflictError) as exc_info:
            address_book.delete_address(db, actor, home.id)

        assert exc_info.value.reason == "address_in_use"
        assert db.get(Address, home.id) is not None

    def test_order_committed_during_delete_conflicts(self, db, buyer):
        actor = Actor.from_user(buyer)
        home = address_book.create_address(db, actor, FIELDS)

        # The foreign key from an order committed by another session
        # only surfaces when the delete is flushed
        def _referenced(mapper, connection, target):
            raise IntegrityError("DELETE FROM addresses", {}, Exception("FOREIGN KEY constraint failed"))

        event.listen(Address, "before_delete", _referenced)
        try:
            with pytest.raises(ConflictError) as exc_info:
                address_book.delete_address(db, actor, home.id)
        finally:
            event.remove(Address, "before_delete", _referenced)

        assert exc_info.value.reason == "address_in_use"
        db.expire_all()
        assert db.get(Address, home.id) is not None

    def test_non_owner_cannot_delete(self, db, buyer, admin):
        home = address_book.create_address(db, Actor.from_user(buyer), FIELDS)
        with pytest.raises(AuthorizationError):
            address_book.delete_address(db, Actor.from_user(admin), home.id)
