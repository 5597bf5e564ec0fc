from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from .errors import ValidationResolutionError
from .models import CheckResult, RuleKind, ValidationRule

LOGGER = logging.getLogger(__name__)

RangeReader = Callable[[str], List[str]]

# Undecidable paths admit the name.
ADMIT_ON_UNKNOWN = True


def _normalize_reference(reference: str) -> str:
    return reference.strip().lstrip("=").strip()


def resolve_allowed_values(reference: str, read_range: RangeReader) -> CheckResult[List[str]]:
    """Read the allow-list behind a range rule without raising."""

    a1 = _normalize_reference(reference)
    if not a1:
        return CheckResult(error=ValidationResolutionError("Empty range reference"))
    try:
        return CheckResult(value=[str(value).strip() for value in read_range(a1)])
    except Exception as exc:
        return CheckResult(
            error=ValidationResolutionError(f"Could not read range {a1}: {exc}")
        )


def memoize_range_reader(read_range: RangeReader) -> RangeReader:
    """Wrap ``read_range`` so each reference is fetched at most once.

    Failures are remembered too and re-raised on later lookups.
    """

    cache: Dict[str, CheckResult[List[str]]] = {}

    def _read(a1: str) -> List[str]:
        if a1 not in cache:
            try:
                cache[a1] = CheckResult(value=list(read_range(a1)))
            except Exception as exc:
                cache[a1] = CheckResult(error=exc)
        result = cache[a1]
        if result.error is not None:
            raise result.error
        return list(result.value_or([]))

    return _read


def is_valid_name(
    rule: Optional[ValidationRule],
    name: str,
    read_range: RangeReader,
) -> bool:
    """Decide whether ``name`` is admissible under the name column's rule."""

    candidate = (name or "").strip()
    if not candidate:
        return False

    if rule is None:
        return True

    LOGGER.debug("Validating name %r against criteria type %s", name, rule.criteria_type)

    if rule.kind is RuleKind.LIST:
        allowed = [value.strip() for value in rule.criteria]
        if not allowed:
            LOGGER.info("List validation has no criteria values; accepting %r", name)
            return ADMIT_ON_UNKNOWN
        is_valid = candidate in allowed
        LOGGER.info(
            "Validation result for %r: %s (checked against %s allowed values)",
            name,
            "VALID" if is_valid else "INVALID",
            len(allowed),
        )
        return is_valid

    if rule.kind is RuleKind.RANGE:
        if not rule.criteria or not rule.criteria[0].strip():
            LOGGER.info("Range validation has no range reference; accepting %r", name)
            return ADMIT_ON_UNKNOWN
        reference = rule.criteria[0]
        result = resolve_allowed_values(reference, read_range)
        if not result.ok:
            LOGGER.warning("%s; accepting %r", result.error, name)
            return ADMIT_ON_UNKNOWN
        allowed_values = result.value_or([])
        is_valid = candidate in allowed_values
        LOGGER.info(
            "Validation result for %r: %s (checked against range %s)",
            name,
            "VALID" if is_valid else "INVALID",
            _normalize_reference(reference),
        )
        return is_valid

    LOGGER.info("Unknown validation criteria type %s; accepting %r", rule.criteria_type, name)
    return ADMIT_ON_UNKNOWN
