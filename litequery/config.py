"""SQLite connection configuration."""

import sqlite3
from enum import IntFlag
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypedDict
from urllib.parse import parse_qsl, urlsplit

from typing_extensions import NotRequired

from litequery.exceptions import ImproperConfigurationError
from litequery.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = (
    "DEFAULT_FLAGS",
    "MEMORY_DATABASE",
    "DatabaseConfig",
    "OpenFlags",
    "build_connection_config",
    "connect",
    "resolve_database_target",
)

logger = get_logger("config")

MEMORY_DATABASE = ":memory:"


class OpenFlags(IntFlag):
    """Open flags, numbered like the engine's ``SQLITE_OPEN_*`` constants."""

    READONLY = 0x00000001
    READWRITE = 0x00000002
    CREATE = 0x00000004
    URI = 0x00000040
    MEMORY = 0x00000080


DEFAULT_FLAGS = OpenFlags.READWRITE | OpenFlags.CREATE


class DatabaseConfig(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    flags: NotRequired[OpenFlags]
    timeout: NotRequired[float]
    cached_statements: NotRequired[int]
    check_same_thread: NotRequired[bool]
    uri: NotRequired[bool]


def _open_mode(flags: OpenFlags) -> str:
    if flags & OpenFlags.MEMORY:
        return "memory"
    readonly = bool(flags & OpenFlags.READONLY)
    readwrite = bool(flags & OpenFlags.READWRITE)
    if readonly == readwrite:
        msg = "Open flags must contain exactly one of READONLY or READWRITE"
        raise ImproperConfigurationError(msg)
    if readonly:
        if flags & OpenFlags.CREATE:
            msg = "CREATE cannot be combined with READONLY"
            raise ImproperConfigurationError(msg)
        return "ro"
    return "rwc" if flags & OpenFlags.CREATE else "rw"


# Relative access granted by each URI mode.
_MODE_ACCESS = {"ro": 0, "rw": 1, "memory": 1, "rwc": 2}


def _with_uri_mode(database: str, mode: str) -> str:
    uri_mode = dict(parse_qsl(urlsplit(database).query)).get("mode")
    if uri_mode is None:
        head, sep, fragment = database.partition("#")
        joiner = "&" if "?" in head else "?"
        return f"{head}{joiner}mode={mode}{sep}{fragment}"
    if uri_mode not in _MODE_ACCESS:
        msg = f"Unknown mode={uri_mode!r} in database URI {database!r}"
        raise ImproperConfigurationError(msg)
    if _MODE_ACCESS[uri_mode] > _MODE_ACCESS[mode]:
        msg = f"Database URI {database!r} requests mode={uri_mode} but the open flags only allow mode={mode}"
        raise ImproperConfigurationError(msg)
    return database


def resolve_database_target(database: str, flags: OpenFlags = DEFAULT_FLAGS, uri: bool = False) -> "tuple[str, bool]":
    """Translate a path and open flags into the ``sqlite3.connect`` target.

    ``file:`` URIs get a ``mode=`` parameter derived from the flags unless they
    carry one already, in which case it must not grant more access than the flags.

    Args:
        database: File path, ``:memory:`` or a ``file:`` URI.
        flags: Open flags.
        uri: Whether ``database`` is already a URI.

    Raises:
        ImproperConfigurationError: If the flags conflict with each other or with the URI.

    Returns:
        The connect target and whether it must be opened in URI mode.
    """
    mode = _open_mode(flags)
    if database.startswith("file:"):
        if not uri and not flags & OpenFlags.URI:
            logger.debug("Database URI detected (%s) but URI mode not requested, enabling it", database)
        return _with_uri_mode(database, mode), True
    if database == MEMORY_DATABASE or mode == "memory":
        return MEMORY_DATABASE, False
    if mode == "rwc":
        return database, False
    return f"{Path(database).absolute().as_uri()}?mode={mode}", True


def build_connection_config(config: "Mapping[str, Any]") -> "dict[str, Any]":
    """Build ``sqlite3.connect`` keyword arguments.

    Transactions are framed explicitly, so the connection is always opened with
    ``isolation_level=None`` (the engine's autocommit mode). ``detect_types`` is
    dropped: rows must come back as the engine's own storage classes.

    Args:
        config: Raw connection configuration mapping.

    Returns:
        Dictionary with connection parameters.
    """
    database = str(config.get("database", MEMORY_DATABASE))
    flags = OpenFlags(config.get("flags", DEFAULT_FLAGS))
    target, uri = resolve_database_target(database, flags, bool(config.get("uri", False)))

    if config.get("detect_types"):
        logger.debug("Ignoring detect_types=%r, converters are not supported", config["detect_types"])
    excluded_keys = {"database", "flags", "uri", "isolation_level", "detect_types"}
    connect_kwargs = {key: value for key, value in config.items() if value is not None and key not in excluded_keys}
    connect_kwargs.update({"database": target, "uri": uri, "isolation_level": None})
    return connect_kwargs


def connect(config: "Mapping[str, Any]") -> sqlite3.Connection:
    return sqlite3.connect(**build_connection_config(config))
