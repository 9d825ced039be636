from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

if TYPE_CHECKING:
    from agentdoc.core.source.tree import Location


class AgentDocError(Exception):
    """Base exception for agentdoc."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class CompileError(AgentDocError):
    """Raised when a component tree cannot be compiled.

    The offending source location, when known, is appended to the message
    and stored in ``context`` under ``file``, ``line`` and ``column``.
    """

    def __init__(
        self,
        message: str,
        *,
        location: Optional["Location"] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if location is not None:
            ctx["file"] = location.path
            ctx["line"] = location.line
            ctx["column"] = location.column
        text = f"{message} ({location})" if location is not None else message
        super().__init__(text, context=ctx)
        self.detail = message
        self.location = location


class MissingRequiredAttributeError(CompileError, ValueError):
    """Raised when an element is missing a mandated attribute."""

    def __init__(
        self,
        element: str,
        attribute: str,
        *,
        message: str | None = None,
        location: Optional["Location"] = None,
    ) -> None:
        msg = message or f"<{element}> requires the '{attribute}' attribute"
        super().__init__(
            msg,
            location=location,
            context={"element": element, "attribute": attribute},
        )
        self.element = element
        self.attribute = attribute


class MutuallyExclusiveAttributesError(CompileError, ValueError):
    """Raised when attributes that exclude each other are supplied together."""

    def __init__(
        self,
        element: str,
        attributes: Sequence[str],
        *,
        location: Optional["Location"] = None,
    ) -> None:
        names = " and ".join(f"'{a}'" for a in attributes)
        super().__init__(
            f"<{element}> accepts only one of {names}, not both",
            location=location,
            context={"element": element, "attributes": list(attributes)},
        )
        self.element = element
        self.attributes = list(attributes)


class UnsupportedElementError(CompileError, ValueError):
    """Raised for a tag outside the vocabulary or used in the wrong place."""


class UnsupportedBlockElementError(UnsupportedElementError):
    """Raised when a block context meets a tag it cannot compile."""


class UnsupportedInlineElementError(UnsupportedElementError):
    """Raised when an inline context meets an unknown or block-level tag."""


class InvalidIdentifierError(CompileError, ValueError):
    """Raised when an XML block or shell variable name is not a legal identifier."""


class InvalidAttributeValueError(CompileError, ValueError):
    """Raised when an attribute is present but its value has the wrong shape."""


class UnresolvableReferenceError(CompileError, LookupError):
    """Raised when a composite component or import cannot be located."""


class CircularReferenceError(CompileError, RecursionError):
    """Raised when composite resolution revisits an identity on the active chain."""

    def __init__(
        self,
        chain: Sequence[str],
        *,
        location: Optional["Location"] = None,
    ) -> None:
        super().__init__(
            "Circular component reference: " + " -> ".join(chain),
            location=location,
            context={"chain": list(chain)},
        )
        self.chain: List[str] = list(chain)


class TypeContractViolationError(CompileError, TypeError):
    """Raised when a literal input payload misses required fields of its declared type."""

    def __init__(
        self,
        message: str,
        *,
        type_name: str,
        missing: Sequence[str],
        location: Optional["Location"] = None,
    ) -> None:
        super().__init__(
            message,
            location=location,
            context={"type": type_name, "missing": list(missing)},
        )
        self.type_name = type_name
        self.missing: List[str] = list(missing)


class MalformedSpreadSourceError(CompileError, ValueError):
    """Raised when a spread attribute does not name an object-literal binding."""


class UnsupportedCompositionError(CompileError, ValueError):
    """Raised when a composite component receives a prop that is not static."""


class UnsupportedExpressionError(CompileError, ValueError):
    """Raised for expressions the compiler does not evaluate."""


class SourceParseError(AgentDocError, ValueError):
    """Raised when a source unit cannot be read or has no document root."""


class ConfigError(AgentDocError, ValueError):
    """Raised when configuration cannot be loaded or fails validation."""


class InternalConsistencyError(AgentDocError, RuntimeError):
    """Raised when the emitter meets an IR node kind it does not handle."""


__all__ = [
    "AgentDocError",
    "CompileError",
    "MissingRequiredAttributeError",
    "MutuallyExclusiveAttributesError",
    "UnsupportedElementError",
    "UnsupportedBlockElementError",
    "UnsupportedInlineElementError",
    "InvalidIdentifierError",
    "InvalidAttributeValueError",
    "UnresolvableReferenceError",
    "CircularReferenceError",
    "TypeContractViolationError",
    "MalformedSpreadSourceError",
    "UnsupportedCompositionError",
    "UnsupportedExpressionError",
    "SourceParseError",
    "ConfigError",
    "InternalConsistencyError",
]
