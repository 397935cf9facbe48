"""Profile persistence backed by a JSON file with encrypted secrets."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .crypto import CredentialCipher
from .errors import CorruptStore, InvalidArgument, StoreInitFailure
from .models import ConnectionProfile

LOG = logging.getLogger(__name__)


class ProfileRecord(BaseModel):
    """On-disk shape of a single profile; ``secret`` holds ciphertext."""

    name: str = Field(min_length=1)
    backend_kind: str
    host: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    secret: str | None = None
    connection_string: str | None = None

    @classmethod
    def from_profile(cls, profile: ConnectionProfile) -> "ProfileRecord":
        return cls(
            name=profile.name,
            backend_kind=profile.backend_kind,
            host=profile.host,
            port=profile.port,
            database=profile.database,
            username=profile.username,
            secret=profile.secret,
            connection_string=profile.connection_string,
        )

    def to_profile(self) -> ConnectionProfile:
        return ConnectionProfile(
            name=self.name,
            backend_kind=self.backend_kind,
            host=self.host,
            port=self.port,
            database=self.database,
            username=self.username,
            secret=self.secret,
            connection_string=self.connection_string,
        )


_RECORDS = TypeAdapter(list[ProfileRecord])


class ProfileRepository:
    """Durable, ordered mapping of profile name to connection parameters.

    Writes are plain overwrites: a crash mid-write can leave a truncated
    file behind. Concurrent writers are not supported.
    """

    def __init__(self, path: Path | str, cipher: CredentialCipher | None = None) -> None:
        self._path = Path(path).expanduser()
        self._cipher = cipher or CredentialCipher.from_environment()
        self._ensure_directory()

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> list[ConnectionProfile]:
        """Load every profile, decrypting secrets; empty when no file exists."""

        if not self._path.exists():
            return []
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CorruptStore(f"Cannot read profile store {self._path}: {exc}") from exc
        if not raw.strip():
            return []
        try:
            records = _RECORDS.validate_json(raw)
        except ValidationError as exc:
            raise CorruptStore(f"Profile store {self._path} is not a list of profiles: {exc}") from exc
        profiles: list[ConnectionProfile] = []
        for record in records:
            profile = record.to_profile()
            if profile.secret:
                profile = replace(profile, secret=self._cipher.decrypt(profile.secret))
            profiles.append(profile)
        return profiles

    def save_all(self, profiles: Iterable[ConnectionProfile]) -> None:
        """Overwrite the store with ``profiles``, encrypting every secret."""

        records = []
        for profile in profiles:
            record = ProfileRecord.from_profile(profile)
            if record.secret:
                record = record.model_copy(update={"secret": self._cipher.encrypt(record.secret)})
            records.append(record)
        self._ensure_directory()
        self._path.write_bytes(_RECORDS.dump_json(records, indent=2))
        try:
            os.chmod(self._path, 0o600)
        except OSError as exc:
            LOG.warning("Could not restrict permissions on %s: %s", self._path, exc)

    def get(self, name: str) -> ConnectionProfile | None:
        for profile in self.load_all():
            if profile.name == name:
                return profile
        return None

    def upsert(self, profile: ConnectionProfile) -> None:
        """Replace any profile with the same name; last write wins."""

        if not profile.name.strip():
            raise InvalidArgument("Profile name must not be empty.")
        profiles = [entry for entry in self.load_all() if entry.name != profile.name]
        profiles.append(profile)
        self.save_all(profiles)

    def delete(self, name: str) -> None:
        profiles = self.load_all()
        remaining = [entry for entry in profiles if entry.name != name]
        if len(remaining) == len(profiles):
            return
        self.save_all(remaining)

    def _ensure_directory(self) -> None:
        parent = self._path.parent
        if parent.exists() and not parent.is_dir():
            raise StoreInitFailure(f"Parent path is not a directory: {parent}")
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreInitFailure(f"Failed to create profiles directory {parent}: {exc}") from exc


__all__ = ["ProfileRecord", "ProfileRepository"]
