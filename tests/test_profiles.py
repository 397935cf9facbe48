"""Tests for the JSON profile repository."""

from __future__ import annotations

import json
import stat
from pathlib import Path

import pytest

from casvizer.crypto import CredentialCipher
from casvizer.errors import CorruptStore, DecryptionFailure, InvalidArgument, StoreInitFailure
from casvizer.models import ConnectionProfile
from casvizer.profiles import ProfileRepository


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher("test-passphrase")


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "nested" / "profiles.json"


def _profile(name: str = "Local", secret: str | None = "hunter2") -> ConnectionProfile:
    return ConnectionProfile(
        name=name,
        backend_kind="postgres",
        host="localhost",
        port=5432,
        database="app",
        username="app",
        secret=secret,
    )


def test_load_all_returns_empty_when_file_missing(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)

    assert repository.load_all() == []
    assert store_path.parent.is_dir()


def test_load_all_treats_blank_file_as_empty(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)
    store_path.write_text("  \n")

    assert repository.load_all() == []


def test_save_all_encrypts_secrets_and_restricts_permissions(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)

    repository.save_all([_profile()])

    raw = json.loads(store_path.read_text())
    assert raw[0]["name"] == "Local"
    assert raw[0]["secret"] != "hunter2"
    assert cipher.decrypt(raw[0]["secret"]) == "hunter2"
    assert stat.S_IMODE(store_path.stat().st_mode) == 0o600


def test_load_all_decrypts_secrets(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)
    repository.save_all([_profile(), _profile("NoSecret", secret=None)])

    loaded = ProfileRepository(store_path, cipher).load_all()

    assert loaded == [_profile(), _profile("NoSecret", secret=None)]


def test_load_all_preserves_order(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)
    repository.save_all([_profile("b", None), _profile("a", None), _profile("c", None)])

    assert [profile.name for profile in repository.load_all()] == ["b", "a", "c"]


def test_upsert_replaces_existing_name(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)
    repository.upsert(_profile(secret="old"))

    repository.upsert(_profile(secret="new"))

    profiles = repository.load_all()
    assert len(profiles) == 1
    assert profiles[0].secret == "new"
    assert repository.get("Local") == profiles[0]
    assert repository.get("Missing") is None


def test_upsert_rejects_blank_name(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)

    with pytest.raises(InvalidArgument):
        repository.upsert(_profile(name="  "))


def test_delete_removes_only_named_profile(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)
    repository.save_all([_profile("a", None), _profile("b", None)])

    repository.delete("a")
    repository.delete("missing")

    assert [profile.name for profile in repository.load_all()] == ["b"]


def test_delete_of_unknown_name_does_not_create_file(store_path: Path, cipher: CredentialCipher) -> None:
    repository = ProfileRepository(store_path, cipher)

    repository.delete("missing")

    assert not store_path.exists()


@pytest.mark.parametrize("content", ["{not json", '{"name": "x"}', '[{"host": "no-name"}]'])
def test_unparseable_store_raises_corrupt_store(store_path: Path, cipher: CredentialCipher, content: str) -> None:
    repository = ProfileRepository(store_path, cipher)
    store_path.write_text(content)

    with pytest.raises(CorruptStore):
        repository.load_all()


def test_wrong_passphrase_surfaces_decryption_failure(store_path: Path, cipher: CredentialCipher) -> None:
    ProfileRepository(store_path, cipher).save_all([_profile()])

    with pytest.raises(DecryptionFailure):
        ProfileRepository(store_path, CredentialCipher("other")).load_all()


def test_parent_that_is_a_file_raises_store_init_failure(tmp_path: Path, cipher: CredentialCipher) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(StoreInitFailure):
        ProfileRepository(blocker / "profiles.json", cipher)
