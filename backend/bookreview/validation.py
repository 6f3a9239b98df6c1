"""
BookReview Backend: Declarative Field Rules
=============================================

What:  Composable per-field rule chains for request bodies, and the conversion
       of validation failures into an ordered ``[{field, message}]`` list.
How:   A chain is an ordered tuple of steps. A *check* raises RuleViolation
       with the field's message; a *sanitizer* returns a cleaned value. The
       chain is attached to a pydantic field through ``rules(...)``, which
       wraps it in a single BeforeValidator so steps run exactly in the order
       they are written:

           TitleRule = Annotated[str, rules(trim, length(2, 200, Messages.TITLE_LENGTH), escape)]

       Required fields use ``required_field()`` so a missing key still runs
       the chain (and fails with the field's own message); optional fields use
       ``optional_field()`` so a missing key skips the chain entirely.
Who:   Request schemas in bookreview.schemas; the RequestValidationError
       handler in main.py calls collect_violations().
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BeforeValidator, Field

from bookreview.constants import Messages

Step = Callable[[Any], Any]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Characters replaced by escape()
_ESCAPE_TABLE = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
})

# Messages for parameters that are validated by FastAPI itself (query/path)
PARAMETER_MESSAGES = {
    "page": Messages.PAGE_INVALID,
    "limit": Messages.LIMIT_INVALID,
    "book_id": Messages.ID_INVALID,
}

_BODY_ERROR_TYPES = {"json_invalid", "model_attributes_type", "dict_type", "model_type"}
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


class RuleViolation(ValueError):
    """Raised by a check; its text is the user-facing message for the field."""


# ══════════════════════════════════════════════════════════════════════════
# Checks
# ══════════════════════════════════════════════════════════════════════════

def length(min_length: Optional[int] = None, max_length: Optional[int] = None, message: str = "") -> Step:
    """String length within [min_length, max_length]; non-strings fail."""

    def check(value: Any) -> Any:
        if not isinstance(value, str):
            raise RuleViolation(message)
        if min_length is not None and len(value) < min_length:
            raise RuleViolation(message)
        if max_length is not None and len(value) > max_length:
            raise RuleViolation(message)
        return value

    return check


def int_range(min_value: int, max_value: int, message: str) -> Step:
    """
    Integer within [min_value, max_value]. Accepts ints, integral floats
    (4.0) and integer strings ("4"); rejects booleans, fractional floats and
    anything else. Returns an int.
    """

    def check(value: Any) -> int:
        if isinstance(value, bool):
            raise RuleViolation(message)
        if isinstance(value, str) and re.fullmatch(r"\s*[+-]?\d+\s*", value):
            value = int(value)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            raise RuleViolation(message)
        if not min_value <= value <= max_value:
            raise RuleViolation(message)
        return value

    return check


def email(message: str) -> Step:
    def check(value: Any) -> Any:
        if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
            raise RuleViolation(message)
        return value

    return check


def not_empty(message: str) -> Step:
    def check(value: Any) -> Any:
        if not isinstance(value, str) or value == "":
            raise RuleViolation(message)
        return value

    return check


# ══════════════════════════════════════════════════════════════════════════
# Sanitizers (non-strings pass through untouched; a later check rejects them)
# ══════════════════════════════════════════════════════════════════════════

def trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def escape(value: Any) -> Any:
    """Replace markup-unsafe characters with HTML entities."""
    return value.translate(_ESCAPE_TABLE) if isinstance(value, str) else value


def normalize_email(value: Any) -> Any:
    """Trim and lowercase. Idempotent: normalize(normalize(x)) == normalize(x)."""
    return value.strip().lower() if isinstance(value, str) else value


# ══════════════════════════════════════════════════════════════════════════
# Composition
# ══════════════════════════════════════════════════════════════════════════

def run_chain(value: Any, steps: Iterable[Step]) -> Any:
    for step in steps:
        value = step(value)
    return value


def rules(*steps: Step) -> BeforeValidator:
    """Attach an ordered rule chain to a pydantic field (use inside Annotated)."""
    chain = tuple(steps)
    return BeforeValidator(lambda value: run_chain(value, chain))


def required_field(**kwargs: Any) -> Any:
    """Missing key → chain runs on None and reports the field's own message."""
    return Field(default=None, validate_default=True, **kwargs)


def optional_field(**kwargs: Any) -> Any:
    """Missing key → chain skipped and field left out of ``model_fields_set``."""
    return Field(default=None, **kwargs)


# ══════════════════════════════════════════════════════════════════════════
# Violation list
# ══════════════════════════════════════════════════════════════════════════

def _field_of(loc: Iterable[Any]) -> Optional[str]:
    names = [part for part in loc if isinstance(part, str) and part not in _LOCATION_PREFIXES]
    return names[-1] if names else None


def _message_of(error: Dict[str, Any], field: Optional[str]) -> str:
    ctx = error.get("ctx") or {}
    if error.get("type") == "value_error" and isinstance(ctx.get("error"), RuleViolation):
        return str(ctx["error"])
    if field in PARAMETER_MESSAGES:
        return PARAMETER_MESSAGES[field]
    return error.get("msg", Messages.VALIDATION_FAILED)


def collect_violations(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Convert pydantic/FastAPI error dicts into ``[{field, message}]``.

    Order follows the input (pydantic reports fields in declaration order);
    only the first violation per field is kept.
    """
    violations: List[Dict[str, str]] = []
    seen = set()
    for error in errors:
        field = _field_of(error.get("loc", ()))
        if field is None or error.get("type") in _BODY_ERROR_TYPES:
            field, message = "body", Messages.INVALID_REQUEST_BODY
        else:
            message = _message_of(error, field)
        if field in seen:
            continue
        seen.add(field)
        violations.append({"field": field, "message": message})
    return violations
