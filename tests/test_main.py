from cloudfs.config import Settings
from cloudfs.core.auth import ActorContext
from cloudfs.main import open_cloudfs


def test_open_cloudfs_bootstraps_store_and_database(tmp_path):
    settings = Settings(store_dir=str(tmp_path / "store"), db_url=f"sqlite:///{tmp_path / 'cloud.db'}")

    with open_cloudfs(settings) as fs:
        channel = fs.channels.create("alice", account_id=1, identity="alice-id")
        actor = ActorContext(channel_id=channel.id, observer="alice-id")
        fs.open_directory("/cloud/alice", actor).create_file("a.txt", b"abc")

    assert (tmp_path / "cloud.db").exists()

    with open_cloudfs(settings) as fs:
        root = fs.open_directory("/cloud/alice", ActorContext())
        assert root.get_child("a.txt").get() == b"abc"
