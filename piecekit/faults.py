"""
piecekit faults - errors raised while loading and indexing pieces.

Every fault carries a stable ``code``, the ``domain`` it belongs to, a
``severity`` used when it is logged, and whether repeating the failed
operation can help (``retryable``). ``to_dict`` gives a flat record for
structured logs.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """Logging weight of a fault."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain(str, Enum):
    """Area of piecekit a fault comes from."""
    CONFIG = "config"      # store settings
    LOADER = "loader"      # file resolution, import, construction
    REGISTRY = "registry"  # lookups and index updates


# domain -> (severity, retryable)
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: (Severity.FATAL, False),
    FaultDomain.LOADER: (Severity.ERROR, True),
    FaultDomain.REGISTRY: (Severity.WARN, False),
}


class Fault(Exception):
    """
    Base class of every piecekit error.

    Attributes:
        code: Stable machine-readable identifier (e.g., "PIECE_NOT_FOUND")
        message: Human-readable summary
        domain: :class:`FaultDomain` the fault belongs to
        severity: Defaults per domain, see ``DOMAIN_DEFAULTS``
        retryable: Defaults per domain, see ``DOMAIN_DEFAULTS``
        metadata: Extra fields for structured logs
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = FaultDomain(domain)
        default_severity, default_retryable = DOMAIN_DEFAULTS[self.domain]
        self.severity = severity or default_severity
        self.retryable = default_retryable if retryable is None else retryable
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.code} {self.domain.value}/{self.severity.value}>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }


# ============================================================================
# LOADER Faults
# ============================================================================

class LoaderError(Fault):
    """
    A path could not be resolved into piece constructors.

    Wraps the original exception (available as ``cause`` and ``__cause__``)
    together with the offending path.
    """

    def __init__(
        self,
        path: str,
        message: str,
        *,
        code: str = "LOADER_FAILED",
        cause: Optional[BaseException] = None,
        retryable: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.path = str(path)
        self.cause = cause
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.LOADER,
            retryable=retryable,
            metadata={"path": self.path, **(metadata or {})},
        )
        if cause is not None:
            self.__cause__ = cause


class MissingExportsError(LoaderError):
    """The module at ``path`` exports no usable piece class."""

    def __init__(self, path: str, **kwargs):
        super().__init__(
            path,
            f"No pieces exported by '{path}'",
            code="MISSING_EXPORTS",
            retryable=False,
            **kwargs,
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for store index faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Optional[Severity] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class PieceNotFoundError(RegistryFault, LookupError):
    """No piece is indexed under ``key``."""

    def __init__(self, key: str, store_name: str = "", **kwargs):
        self.key = key
        self.store_name = store_name
        where = f" in store '{store_name}'" if store_name else ""
        super().__init__(
            code="PIECE_NOT_FOUND",
            message=f"Piece '{key}' is not loaded{where}",
            metadata={"key": key, "store": store_name, **kwargs.get("metadata", {})},
        )


class AliasConflictError(RegistryFault):
    """An alias is already claimed by a different piece."""

    def __init__(self, alias: str, owner: str, claimant: str, **kwargs):
        self.alias = alias
        self.owner = owner
        self.claimant = claimant
        super().__init__(
            code="ALIAS_CONFLICT",
            message=(
                f"Alias '{alias}' requested by '{claimant}' is already "
                f"claimed by '{owner}'"
            ),
            severity=Severity.ERROR,
            metadata={"alias": alias, "owner": owner, "claimant": claimant, **kwargs.get("metadata", {})},
        )


class PieceContextError(RegistryFault, TypeError):
    """A piece was constructed without a usable context."""

    def __init__(self, missing: list[str], **kwargs):
        self.missing = missing
        super().__init__(
            code="PIECE_CONTEXT_INVALID",
            message=f"Piece context is missing required field(s): {', '.join(missing)}",
            severity=Severity.ERROR,
            metadata={"missing": missing, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigError(Fault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        self.key = key
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            domain=FaultDomain.CONFIG,
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )
