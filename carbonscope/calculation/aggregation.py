# -*- coding: utf-8 -*-
"""
Partial-failure helpers shared by the aggregate calculators.

An aggregate calculator validates and computes each entry independently.
An entry that is malformed or references an unknown key is skipped: it is
logged at WARNING and recorded as a SkippedEntry on the result, and the
aggregate still returns a total over the remaining entries.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from carbonscope.calculation.models import SkippedEntry
from carbonscope.exceptions import CarbonScopeException

logger = logging.getLogger(__name__)

INVALID_ENTRY_CODE = "CS_CALC_INVALID_ENTRY"


def _plain(raw: Any) -> Any:
    if isinstance(raw, BaseModel):
        return raw.model_dump(mode="json")
    if isinstance(raw, Mapping):
        return {str(k): v if isinstance(v, (str, int, float, bool, type(None))) else repr(v)
                for k, v in raw.items()}
    return repr(raw)


def skipped_entry(index: int, raw: Any, exc: Exception, source_kind: str) -> SkippedEntry:
    """Log and describe an entry left out of an aggregate."""
    if isinstance(exc, ValidationError):
        reason = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'entry'}: {err['msg']}"
            for err in exc.errors()
        )
        error_code = INVALID_ENTRY_CODE
    elif isinstance(exc, CarbonScopeException):
        reason = exc.message
        error_code = exc.error_code
    else:
        reason = str(exc)
        error_code = None

    logger.warning("Skipping %s entry %d: %s", source_kind, index, reason)
    return SkippedEntry(index=index, reason=reason, error_code=error_code, entry=_plain(raw))


#: Exceptions that mark one aggregate entry as unusable
ENTRY_ERRORS = (ValidationError, CarbonScopeException)


__all__ = ["ENTRY_ERRORS", "INVALID_ENTRY_CODE", "skipped_entry"]
