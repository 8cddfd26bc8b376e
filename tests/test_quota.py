import pytest

from cloudfs.core.auth import ActorContext
from cloudfs.models import Attachment
from cloudfs.services.stats import fetch_storage_totals


def _add_file(fs, channel, name, size):
    fs.records.insert(
        Attachment(
            hash=f"h-{channel.address}-{name}",
            account_id=channel.account_id,
            owner_id=channel.id,
            filename=name,
            size_bytes=size,
        )
    )


@pytest.fixture
def limited_fs(make_fs):
    return make_fs(service_classes={"basic": {"attach_upload_limit": 100}})


def test_usage_is_account_wide(fs):
    first = fs.channels.create("one", account_id=7)
    second = fs.channels.create("two", account_id=7)
    other = fs.channels.create("three", account_id=8)
    _add_file(fs, first, "a", 10)
    _add_file(fs, second, "b", 20)
    _add_file(fs, other, "c", 40)

    assert fs.quota.usage(7) == 30
    assert fs.quota.usage(8) == 40
    assert fs.quota.usage(9) == 0


def test_storage_totals_skip_directories(fs, alice):
    _add_file(fs, alice, "a", 10)
    fs.records.insert(
        Attachment(hash="dir", account_id=1, owner_id=alice.id, filename="d", is_dir=True)
    )
    assert fetch_storage_totals(fs.session, 1) == {"total_files": 1, "total_bytes": 10}
    assert fetch_storage_totals(fs.session)["total_files"] == 1


def test_limit_comes_from_service_class(limited_fs):
    basic = limited_fs.channels.create("basic", account_id=1, service_class="basic")
    plain = limited_fs.channels.create("plain", account_id=2)
    assert limited_fs.quota.limit(basic) == 100
    assert limited_fs.quota.limit(plain) is None


def test_limit_falls_back_to_store_capacity(fs, alice, monkeypatch):
    monkeypatch.setattr(fs.byte_store, "total_space", lambda: 5000)
    assert fs.quota.effective_limit(alice) == 5000
    assert not fs.quota.exceeds(alice)


def test_quota_info_for_owner(limited_fs):
    channel = limited_fs.channels.create("basic", account_id=1, service_class="basic")
    _add_file(limited_fs, channel, "a", 30)
    assert limited_fs.quota.quota_info(channel) == (30, 70)


def test_free_space_is_not_clamped(limited_fs):
    channel = limited_fs.channels.create("basic", account_id=1, service_class="basic")
    _add_file(limited_fs, channel, "a", 150)
    assert limited_fs.quota.exceeds(channel)
    assert limited_fs.quota.quota_info(channel) == (150, -50)


def test_root_quota_reports_store_totals(fs, monkeypatch):
    monkeypatch.setattr(fs.byte_store, "total_space", lambda: 1000)
    monkeypatch.setattr(fs.byte_store, "free_space", lambda: 400)
    assert fs.quota.quota_info(None) == (600, 400)
    assert fs.open_directory("/cloud", ActorContext()).get_quota_info() == (600, 400)


def test_directory_quota_info_uses_owner_account(limited_fs):
    channel = limited_fs.channels.create("basic", account_id=1, service_class="basic", identity="basic-id")
    actor = ActorContext(channel_id=channel.id, observer="basic-id")
    root = limited_fs.open_directory("/cloud/basic", actor)
    root.create_file("a.txt", b"x" * 25)
    assert root.get_quota_info() == (25, 75)
