import pytest

from cloudfs.config import Settings


def test_defaults(monkeypatch):
    for name in ("STORE_DIR", "DB_URL", "MOUNT_POINT", "BLOCK_PUBLIC", "MAX_FILE_SIZE_BYTES",
                 "ATTACH_HASH_LENGTH", "SERVICE_CLASSES"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.mount_point == "cloud"
    assert settings.block_public is False
    assert settings.max_file_size == 0
    assert settings.attach_hash_length == 32
    assert settings.service_classes == {}
    assert settings.db_connect_args == {"check_same_thread": False}


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("MOUNT_POINT", "/dav/")
    monkeypatch.setenv("BLOCK_PUBLIC", "yes")
    monkeypatch.setenv("MAX_FILE_SIZE_BYTES", "1024")
    monkeypatch.setenv("ATTACH_HASH_LENGTH", "500")
    monkeypatch.setenv("DB_URL", "postgresql://localhost/cloud")
    monkeypatch.setenv("SERVICE_CLASSES", '{"gold": {"attach_upload_limit": 2048}}')

    settings = Settings.from_env()
    assert settings.mount_point == "dav"
    assert settings.block_public is True
    assert settings.max_file_size == 1024
    assert settings.attach_hash_length == 64
    assert settings.db_connect_args == {}
    assert settings.service_class_fetch("gold", "attach_upload_limit") == 2048
    assert settings.service_class_fetch("silver", "attach_upload_limit") is None
    assert settings.service_class_fetch("", "attach_upload_limit") is None


def test_service_classes_must_be_an_object(monkeypatch):
    monkeypatch.setenv("SERVICE_CLASSES", "[1, 2]")
    with pytest.raises(ValueError):
        Settings.from_env()
