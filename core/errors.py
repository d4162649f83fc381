# ============================================================================
# ERROR CLASSIFIER
# ============================================================================
# STATUS: Core - Exception chain classification
# PURPOSE: Turn database/transport exceptions into user-safe messages
# LAST_REVIEWED: 18 OCT 2026
# EXPORTS: ErrorInfo, classify, is_*_error, get_user_friendly_message,
#          get_technical_details, iter_exception_chain
# DEPENDENCIES: psycopg
# ============================================================================
"""
Error Classifier

Inspects an exception and every exception it wraps (``__cause__``, or
``__context__`` when the context is not suppressed) and assigns one
ErrorKind. Each category is checked against the whole chain before the
next category is tried:

    connection -> timeout -> constraint -> duplicate key -> foreign key

Driver codes are PostgreSQL SQLSTATEs as exposed by psycopg on
``err.sqlstate``. Any object with a ``sqlstate`` attribute is treated the
same way, so wrapped driver errors classify identically.

The user message never contains exception text. Exception text, driver
diagnostics and the formatted traceback go into ``technical_details``,
which is for logs only.

Usage:
    from core.errors import classify

    try:
        await repo.create(todo)
    except Exception as e:
        info = classify(e, "Could not save the todo.")
        logger.error(info.technical_details)
        return {"error": info.user_message}
"""

import asyncio
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import psycopg

from core.contracts import ErrorKind


# ============================================================================
# SQLSTATE TABLES
# ============================================================================

# Connection exception (08), invalid authorization (28)
CONNECTION_SQLSTATE_CLASSES = ("08", "28")
CONNECTION_SQLSTATES = frozenset({
    "3D000",  # invalid catalog name (cannot open database)
    "53300",  # too many connections
    "57P01",  # admin shutdown
    "57P02",  # crash shutdown
    "57P03",  # cannot connect now
})
TIMEOUT_SQLSTATES = frozenset({
    "57014",  # query canceled (statement_timeout)
    "55P03",  # lock not available (lock_timeout)
    "25P03",  # idle in transaction session timeout
})
CONSTRAINT_SQLSTATES = frozenset({
    "23000",  # integrity constraint violation
    "23001",  # restrict violation
    "23502",  # not null violation
    "23514",  # check violation
    "23P01",  # exclusion violation
})
DUPLICATE_KEY_SQLSTATES = frozenset({"23505"})
FOREIGN_KEY_SQLSTATES = frozenset({"23503"})


USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.CONNECTION: (
        "Unable to connect to the database. Please try again later "
        "or contact support."
    ),
    ErrorKind.TIMEOUT: (
        "The operation timed out because it took too long. Please try again."
    ),
    ErrorKind.CONSTRAINT_VIOLATION: (
        "The operation could not be completed because of data constraints. "
        "Please check the values you entered."
    ),
    ErrorKind.DUPLICATE_KEY: (
        "The data you entered already exists. Please use different values."
    ),
    ErrorKind.FOREIGN_KEY_VIOLATION: (
        "This record cannot be deleted or modified because other records "
        "depend on it."
    ),
}

DEFAULT_USER_MESSAGE = "An unexpected error occurred. Please try again later."


@dataclass(frozen=True)
class ErrorInfo:
    """Classification of one exception chain."""
    kind: ErrorKind
    user_message: str
    technical_details: str
    sql_state: Optional[str] = None

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        result: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.user_message,
        }
        if self.sql_state:
            result["sql_state"] = self.sql_state
        if include_details:
            result["technical_details"] = self.technical_details
        return result


# ============================================================================
# CHAIN WALKING
# ============================================================================

def iter_exception_chain(err: BaseException) -> Iterator[BaseException]:
    """Yield the exception and every exception it wraps, outermost first."""
    seen = set()
    current: Optional[BaseException] = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def inner_exception(err: BaseException) -> Optional[BaseException]:
    """Immediate wrapped exception, if any."""
    if err.__cause__ is not None:
        return err.__cause__
    if not err.__suppress_context__:
        return err.__context__
    return None


def _sqlstate(err: BaseException) -> Optional[str]:
    state = getattr(err, "sqlstate", None)
    return state if isinstance(state, str) and state else None


def _message(err: BaseException) -> str:
    return str(err).lower()


def _is_transport_error(err: BaseException) -> bool:
    """Driver or socket failure that never reached the server."""
    if isinstance(err, (psycopg.InterfaceError, ConnectionError)):
        return True
    # OperationalError without a server SQLSTATE is raised client-side
    # (connection refused, pool timeout, SSL negotiation, ...)
    return isinstance(err, psycopg.OperationalError) and _sqlstate(err) is None


# ============================================================================
# PER-NODE PREDICATES
# ============================================================================

def _node_is_connection(err: BaseException) -> bool:
    state = _sqlstate(err)
    if state and (state[:2] in CONNECTION_SQLSTATE_CLASSES or state in CONNECTION_SQLSTATES):
        return True
    if _is_transport_error(err):
        return True
    message = _message(err)
    return "connection" in message or "network" in message


def _node_is_timeout(err: BaseException) -> bool:
    if _sqlstate(err) in TIMEOUT_SQLSTATES:
        return True
    if isinstance(err, (TimeoutError, asyncio.TimeoutError)):
        return True
    return "timeout" in _message(err)


def _node_is_duplicate_key(err: BaseException) -> bool:
    if _sqlstate(err) in DUPLICATE_KEY_SQLSTATES:
        return True
    return "duplicate" in _message(err)


def _node_is_foreign_key(err: BaseException) -> bool:
    if _sqlstate(err) in FOREIGN_KEY_SQLSTATES:
        return True
    message = _message(err)
    return "foreign key" in message or "reference constraint" in message


def _node_is_constraint(err: BaseException) -> bool:
    if _sqlstate(err) in CONSTRAINT_SQLSTATES:
        return True
    # Unique and FK violations also mention "constraint"; they have
    # their own categories
    if _node_is_duplicate_key(err) or _node_is_foreign_key(err):
        return False
    return "constraint" in _message(err)


# ============================================================================
# CHAIN-WIDE PREDICATES
# ============================================================================

def is_connection_error(err: BaseException) -> bool:
    """Connection, login, network or transport failure anywhere in the chain."""
    return any(_node_is_connection(e) for e in iter_exception_chain(err))


def is_timeout_error(err: BaseException) -> bool:
    """Query or lock timeout anywhere in the chain."""
    return any(_node_is_timeout(e) for e in iter_exception_chain(err))


def is_constraint_error(err: BaseException) -> bool:
    """Generic constraint violation (not unique / not FK) anywhere in the chain."""
    return any(_node_is_constraint(e) for e in iter_exception_chain(err))


def is_duplicate_key_error(err: BaseException) -> bool:
    """Unique key violation anywhere in the chain."""
    return any(_node_is_duplicate_key(e) for e in iter_exception_chain(err))


def is_foreign_key_error(err: BaseException) -> bool:
    """Foreign key violation anywhere in the chain."""
    return any(_node_is_foreign_key(e) for e in iter_exception_chain(err))


_PRECEDENCE = (
    (ErrorKind.CONNECTION, is_connection_error),
    (ErrorKind.TIMEOUT, is_timeout_error),
    (ErrorKind.CONSTRAINT_VIOLATION, is_constraint_error),
    (ErrorKind.DUPLICATE_KEY, is_duplicate_key_error),
    (ErrorKind.FOREIGN_KEY_VIOLATION, is_foreign_key_error),
)


def classify_kind(err: BaseException) -> ErrorKind:
    """ErrorKind for an exception chain."""
    for kind, predicate in _PRECEDENCE:
        if predicate(err):
            return kind
    return ErrorKind.UNKNOWN


def first_sqlstate(err: BaseException) -> Optional[str]:
    """First SQLSTATE found walking the chain outward-in."""
    for e in iter_exception_chain(err):
        state = _sqlstate(e)
        if state:
            return state
    return None


# ============================================================================
# MESSAGES
# ============================================================================

def get_user_friendly_message(
    err: BaseException,
    default_message: str = DEFAULT_USER_MESSAGE,
) -> str:
    """User-facing message for an exception; never includes exception text."""
    kind = classify_kind(err)
    return USER_MESSAGES.get(kind, default_message)


def _driver_diagnostics(err: BaseException) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    state = _sqlstate(err)
    if state:
        fields["SQL State"] = state

    diag = getattr(err, "diag", None)
    if diag is not None:
        fields["SQL Severity"] = getattr(diag, "severity", None)
        fields["SQL Procedure"] = getattr(diag, "source_function", None)
        fields["SQL Line Number"] = getattr(diag, "source_line", None)
        fields["SQL Constraint"] = getattr(diag, "constraint_name", None)

    pgconn = getattr(err, "pgconn", None)
    if pgconn is not None:
        host = getattr(pgconn, "host", None)
        if isinstance(host, bytes):
            host = host.decode(errors="replace")
        fields["SQL Server"] = host

    return {k: v for k, v in fields.items() if v is not None}


def get_technical_details(err: BaseException) -> str:
    """Multi-line diagnostic text for logs (includes the traceback)."""
    lines = [
        f"Exception Type: {type(err).__name__}",
        f"Message: {err}",
    ]

    for label, value in _driver_diagnostics(err).items():
        lines.append(f"{label}: {value}")

    inner = inner_exception(err)
    if inner is not None:
        lines.append(f"Inner Exception: {type(inner).__name__}: {inner}")

    trace = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    lines.append(f"Stack Trace:\n{trace}")

    return "\n".join(lines)


def classify(
    err: BaseException,
    default_message: str = DEFAULT_USER_MESSAGE,
) -> ErrorInfo:
    """
    Classify an exception chain.

    Args:
        err: Exception to inspect (wrapped causes are inspected too)
        default_message: User message when no category matches

    Returns:
        ErrorInfo with kind, user message, technical details and SQLSTATE
    """
    kind = classify_kind(err)
    return ErrorInfo(
        kind=kind,
        user_message=USER_MESSAGES.get(kind, default_message),
        technical_details=get_technical_details(err),
        sql_state=first_sqlstate(err),
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ErrorInfo",
    "USER_MESSAGES",
    "DEFAULT_USER_MESSAGE",
    "iter_exception_chain",
    "inner_exception",
    "is_connection_error",
    "is_timeout_error",
    "is_constraint_error",
    "is_duplicate_key_error",
    "is_foreign_key_error",
    "classify_kind",
    "first_sqlstate",
    "get_user_friendly_message",
    "get_technical_details",
    "classify",
]
