"""Create a sample database and register a casvizer profile for it.

SQLite (the default) needs nothing but a writable path. ``--backend postgres``
starts a throwaway Docker container instead.
"""

from __future__ import annotations

import argparse
import sqlite3
import subprocess
import sys
import time
from contextlib import closing
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from casvizer.config import load_config
from casvizer.crypto import CredentialCipher
from casvizer.errors import CasvizerError
from casvizer.models import BackendKind, ConnectionProfile
from casvizer.profiles import ProfileRepository

DEFAULT_SQLITE_PATH = Path.home() / ".casvizer" / "sample.db"
DEFAULT_CONTAINER = "casvizer-sample-db"
DEFAULT_PORT = 5543
DEFAULT_PASSWORD = "casvizer"
DEFAULT_DB = "casvizer_demo"
DEFAULT_USER = "casvizer"
DOCKER_IMAGE = "postgres:16-alpine"

SQLITE_SEED = """
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL,
    nickname TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS orders (
    id INTEGER PRIMARY KEY,
    account_id INTEGER REFERENCES accounts(id),
    total REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
);
INSERT OR IGNORE INTO accounts (id, email, nickname) VALUES
    (1, 'anna@example.com', 'Anna'),
    (2, 'ben@example.com', NULL),
    (3, 'cara@example.com', 'He said, "hi"');
INSERT OR IGNORE INTO orders (id, account_id, total, status) VALUES
    (1, 1, 19.99, 'complete'),
    (2, 1, 5.00, 'pending'),
    (3, 3, 42.50, 'complete');
"""

POSTGRES_SEED = """
CREATE TABLE IF NOT EXISTS accounts (
    id SERIAL PRIMARY KEY,
    email TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT now()
);
CREATE TABLE IF NOT EXISTS orders (
    id SERIAL PRIMARY KEY,
    account_id INTEGER REFERENCES accounts(id),
    total NUMERIC(10,2) NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
);
INSERT INTO accounts (email) VALUES
    ('anna@example.com'),
    ('ben@example.com'),
    ('cara@example.com')
ON CONFLICT DO NOTHING;
""".strip()


def run(cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True, **kwargs)


def seed_sqlite(path: Path) -> ConnectionProfile:
    path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(path)) as conn:
        conn.executescript(SQLITE_SEED)
        conn.commit()
    return ConnectionProfile(name="SQLite Sample", backend_kind=BackendKind.SQLITE.value, database=str(path))


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_postgres(args: argparse.Namespace) -> ConnectionProfile:
    if container_exists(args.container):
        print(f"Container '{args.container}' already exists. Reusing it.")
        run(["docker", "start", args.container], check=False)
    else:
        run(
            [
                "docker", "run", "-d",
                "--name", args.container,
                "-e", f"POSTGRES_PASSWORD={args.password}",
                "-e", f"POSTGRES_DB={args.database}",
                "-e", f"POSTGRES_USER={args.user}",
                "-p", f"{args.port}:5432",
                DOCKER_IMAGE,
            ]
        )
    for _ in range(15):
        ready = subprocess.run(["docker", "exec", args.container, "pg_isready", "-U", args.user], text=True)
        if ready.returncode == 0:
            break
        time.sleep(1.0)
    else:
        print("Warning: database did not report ready state; continuing anyway.")
    run(
        ["docker", "exec", "-i", args.container, "psql", "-U", args.user, "-d", args.database, "-v", "ON_ERROR_STOP=1"],
        input=POSTGRES_SEED,
    )
    return ConnectionProfile(
        name="Docker Sample",
        backend_kind=BackendKind.POSTGRES.value,
        host="localhost",
        port=args.port,
        database=args.database,
        username=args.user,
        secret=args.password,
    )


def register_profile(profile: ConnectionProfile) -> Path:
    config = load_config()
    repository = ProfileRepository(
        config.profiles_path(),
        CredentialCipher.from_environment(fallback=config.fallback_passphrase),
    )
    repository.upsert(profile)
    return repository.path


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--backend", choices=("sqlite", "postgres"), default="sqlite")
    parser.add_argument("--path", type=Path, default=DEFAULT_SQLITE_PATH, help="SQLite database file")
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose Postgres on")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Postgres password")
    parser.add_argument("--database", default=DEFAULT_DB, help="Database name to create")
    parser.add_argument("--user", default=DEFAULT_USER, help="Database user")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        if args.backend == "sqlite":
            profile = seed_sqlite(args.path.expanduser())
        else:
            profile = start_postgres(args)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    try:
        store = register_profile(profile)
    except CasvizerError as exc:
        print(f"Could not save profile: {exc}")
        return 1
    print(f"Sample database is ready. Saved profile '{profile.name}' to {store}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
