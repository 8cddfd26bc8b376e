import pytest

from cloudfs.core.auth import ActorContext
from cloudfs.core.exceptions import Forbidden
from cloudfs.models import (
    PERMS_AUTHED,
    PERMS_SELF,
    PERMS_SPECIFIC,
    VIEW_STORAGE,
    WRITE_STORAGE,
)


@pytest.fixture
def bob():
    return ActorContext(observer="bob-id")


def test_owner_is_always_allowed(fs):
    channel = fs.channels.create("carol", account_id=3, identity="carol-id", view_storage=PERMS_SELF)
    owner = ActorContext(channel_id=channel.id, observer="carol-id")
    assert fs.gate.can_view(owner, channel.id)
    assert fs.gate.can_write(owner, channel.id)
    assert fs.gate.is_owner(owner, channel.id)


def test_public_view_default_write_self(fs, alice, bob):
    anonymous = ActorContext()
    assert fs.gate.can_view(anonymous, alice.id)
    assert fs.gate.can_view(bob, alice.id)
    assert not fs.gate.can_write(bob, alice.id)
    assert not fs.gate.can_write(anonymous, alice.id)


def test_authenticated_level_needs_an_observer(fs, bob):
    channel = fs.channels.create("dave", account_id=4, view_storage=PERMS_AUTHED)
    assert fs.gate.can_view(bob, channel.id)
    assert not fs.gate.can_view(ActorContext(), channel.id)


def test_specific_level_needs_a_grant(fs, bob):
    channel = fs.channels.create(
        "erin", account_id=5, view_storage=PERMS_SPECIFIC, write_storage=PERMS_SPECIFIC
    )
    assert not fs.gate.can_view(bob, channel.id)
    fs.channels.grant(channel.id, "bob-id", VIEW_STORAGE)
    assert fs.gate.can_view(bob, channel.id)
    assert not fs.gate.can_write(bob, channel.id)
    fs.channels.grant(channel.id, "bob-id", WRITE_STORAGE)
    assert fs.gate.can_write(bob, channel.id)
    assert not fs.gate.is_owner(bob, channel.id)


def test_unowned_root_is_viewable_not_writable(fs, bob):
    assert fs.gate.can_view(ActorContext(), None)
    assert not fs.gate.can_write(bob, None)


def test_removed_owner_denies(fs, alice, alice_actor):
    fs.channels.remove(alice.id)
    assert not fs.gate.can_view(alice_actor, alice.id)
    assert not fs.gate.can_write(alice_actor, alice.id)


def test_block_public_denies_anonymous(make_fs):
    fs = make_fs(block_public="true")
    channel = fs.channels.create("alice", account_id=1, identity="alice-id")
    anonymous = ActorContext()
    assert not fs.gate.can_view(anonymous, channel.id)
    assert not fs.gate.can_view(anonymous, None)
    assert fs.gate.can_view(ActorContext(observer="bob-id"), channel.id)

    with pytest.raises(Forbidden):
        fs.open_directory("/cloud", anonymous).get_children()


def test_read_operations_forbidden_without_view_storage(fs, alice, alice_actor, bob):
    alice.view_storage = PERMS_SPECIFIC
    fs.session.add(alice)
    fs.session.commit()

    owner_root = fs.open_directory("/cloud/alice", alice_actor)
    owner_root.create_directory("docs")
    assert owner_root.child_exists("docs")
    assert [node.get_name() for node in owner_root.get_children()] == ["docs"]

    root = fs.open_directory("/cloud/alice", bob)
    with pytest.raises(Forbidden):
        root.get_children()
    with pytest.raises(Forbidden):
        root.get_child("docs")
    with pytest.raises(Forbidden):
        root.child_exists("docs")


def test_hidden_channels_are_not_listed(fs, alice, bob):
    fs.channels.create("frank", account_id=6, view_storage=PERMS_SELF)
    names = [node.get_name() for node in fs.open_directory("/cloud", bob).get_children()]
    assert names == ["alice"]


def test_gate_is_reevaluated_per_call(fs, alice, bob):
    root = fs.open_directory("/cloud/alice", bob)
    assert root.get_children() == []
    alice.view_storage = PERMS_SELF
    fs.session.add(alice)
    fs.session.commit()
    with pytest.raises(Forbidden):
        root.get_children()
