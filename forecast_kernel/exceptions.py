"""
Typed Exception Hierarchy for the Forecast Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A forecast that cannot be computed must never be presented as a plausible
number. Callers (the reporting layer) need to tell "the PO query failed"
apart from "labor sources conflict" without parsing messages, so every
error has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA (project id, component, weeks, ...)

Example:
    try:
        result = service.get_forecast(project_id)
    except UpstreamFetchFailureError as e:
        api_response(code=e.code, component=e.component)
    except SourceConflictError as e:
        api_response(code=e.code, weeks=[w.isoformat() for w in e.weeks])

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ForecastKernelError (base)
    |
    +-- ClassificationError
    |   +-- ClassificationAmbiguousError
    |
    +-- LaborSourceError
    |   +-- SourceConflictError
    |
    +-- UpstreamError
    |   +-- UpstreamFetchFailureError
    |
    +-- ProjectNotFoundError
    |
    +-- ForecastInvariantError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|----------------------------------------
Classification  | CLASSIFICATION_AMBIGUOUS     | Records matched no rule and the policy
                |                              | demands full classification
----------------|------------------------------|----------------------------------------
Labor source    | SOURCE_CONFLICT              | Current and legacy labor actuals share
                |                              | weeks and no canonical source is declared
----------------|------------------------------|----------------------------------------
Upstream        | UPSTREAM_FETCH_FAILURE       | A data-fetch dependency failed
----------------|------------------------------|----------------------------------------
Project         | PROJECT_NOT_FOUND            | Project id unknown to the data source
----------------|------------------------------|----------------------------------------
Invariant       | FORECAST_INVARIANT_VIOLATED  | Reconciled output broke EAC = AC + ETC
                |                              | or forecasted_final >= actuals

Unclassified records are NOT errors by default; they are reported as counts
on the result. Division-by-zero guards (hours = 0, contract value = 0) are
defined to yield zero and never raise.
"""

from __future__ import annotations

from datetime import date


class ForecastKernelError(Exception):
    """
    Base exception for all forecast kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FORECAST_KERNEL_ERROR"


# Classification exceptions


class ClassificationError(ForecastKernelError):
    """Base exception for category classification errors."""

    code: str = "CLASSIFICATION_ERROR"


class ClassificationAmbiguousError(ClassificationError):
    """Records could not be assigned a category by any rule."""

    code: str = "CLASSIFICATION_AMBIGUOUS"

    def __init__(self, record_kind: str, count: int, references: tuple[str, ...] = ()):
        self.record_kind = record_kind
        self.count = count
        self.references = references
        super().__init__(
            f"{count} {record_kind} record(s) matched no category rule"
        )


# Labor source exceptions


class LaborSourceError(ForecastKernelError):
    """Base exception for labor actuals source-of-truth errors."""

    code: str = "LABOR_SOURCE_ERROR"


class SourceConflictError(LaborSourceError):
    """Current and legacy labor actuals overlap without a canonical source."""

    code: str = "SOURCE_CONFLICT"

    def __init__(self, project_id: str, weeks: tuple[date, ...]):
        self.project_id = project_id
        self.weeks = weeks
        first = weeks[0].isoformat() if weeks else "?"
        super().__init__(
            f"Project {project_id}: current and legacy labor actuals both "
            f"cover {len(weeks)} week(s) (first {first}) and no canonical "
            f"labor source is declared"
        )


# Upstream exceptions


class UpstreamError(ForecastKernelError):
    """Base exception for failures of external data collaborators."""

    code: str = "UPSTREAM_ERROR"


class UpstreamFetchFailureError(UpstreamError):
    """A forecast input could not be fetched; the forecast fails closed."""

    code: str = "UPSTREAM_FETCH_FAILURE"

    def __init__(self, component: str, project_id: str, reason: str):
        self.component = component
        self.project_id = project_id
        self.reason = reason
        super().__init__(
            f"Unable to compute forecast for project {project_id}: "
            f"fetching {component} failed ({reason})"
        )


# Project exceptions


class ProjectNotFoundError(ForecastKernelError):
    """The data source does not know the requested project."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# Invariant exceptions


class ForecastInvariantError(ForecastKernelError):
    """A reconciled forecast broke one of its structural invariants."""

    code: str = "FORECAST_INVARIANT_VIOLATED"

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"Forecast invariant {invariant} violated: {detail}")
