"""
Project Forecast Service (``forecast_services.forecast_service``).

Responsibility
--------------
Fetches every input of one project's forecast from a
``ForecastDataSource`` in parallel, then runs the pure engines in a single
thread: labor aggregation, running rates, future labor projection,
purchase order rollup and EAC reconciliation.

Architecture position
---------------------
**Services layer** -- orchestration.  Reads policy from
``forecast_config`` and unpacks it into plain engine arguments.  Owns no
persistence and writes nothing.

Invariants enforced
-------------------
* Fail closed: if any input fetch fails, the whole forecast fails with
  ``UpstreamFetchFailureError``.  No component is ever substituted with
  zero.
* No caching: every call recomputes from current source data.
* Determinism: the calculation thread sees the same inputs in the same
  order regardless of which fetch finished first.

Failure modes
-------------
* ``ProjectNotFoundError`` -- the source does not know the project.
* ``UpstreamFetchFailureError`` -- a source call raised.
* ``SourceConflictError`` -- overlapping labor sources, undeclared.
* ``ClassificationAmbiguousError`` -- only with ``fail_on_unclassified``.

Audit relevance
---------------
``forecast_started`` / ``forecast_completed`` / ``forecast_failed`` are
logged with the project id and policy checksum, and every engine call
emits its own FORECAST_ENGINE_TRACE.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from forecast_config import get_active_policy
from forecast_config.schema import ForecastPolicy
from forecast_engines.classifier import DEFAULT_SYNONYMS, ClassificationTables
from forecast_engines.future_labor import project_future_labor
from forecast_engines.labor_actuals import (
    LaborLine,
    WeeklyLaborCost,
    aggregate_labor_actuals,
    cost_labor_records,
    select_labor_source,
    weekly_labor_costs,
)
from forecast_engines.po_rollup import rollup_purchase_orders
from forecast_engines.reconciler import ForecastResult, reconcile_forecast
from forecast_engines.running_rate import (
    KEY_BY_CATEGORY,
    KEY_BY_CRAFT,
    CompositeRate,
    RunningRate,
    calculate_running_rates,
    composite_rate,
    trailing_window,
)
from forecast_kernel.domain.clock import Clock, SystemClock
from forecast_kernel.domain.records import (
    BudgetAllocation,
    ChangeOrderRecord,
    CraftType,
    HeadcountForecastEntry,
    LaborActualRecord,
    PerDiemRecord,
    Project,
    PurchaseOrderRecord,
)
from forecast_kernel.exceptions import (
    ForecastKernelError,
    ProjectNotFoundError,
    UpstreamFetchFailureError,
)
from forecast_kernel.logging_config import LogContext, get_logger
from forecast_services.sources import ForecastDataSource

logger = get_logger("services.forecast")

COMPONENT_PROJECT = "project"
COMPONENT_LABOR_ACTUALS = "labor_actuals"
COMPONENT_CRAFT_TYPES = "craft_types"
COMPONENT_PER_DIEM = "per_diem"
COMPONENT_PURCHASE_ORDERS = "purchase_orders"
COMPONENT_HEADCOUNT = "headcount_forecasts"
COMPONENT_BUDGETS = "budget_allocations"
COMPONENT_CHANGE_ORDERS = "change_orders"

ALL_COMPONENTS: tuple[str, ...] = (
    COMPONENT_PROJECT,
    COMPONENT_LABOR_ACTUALS,
    COMPONENT_CRAFT_TYPES,
    COMPONENT_PER_DIEM,
    COMPONENT_PURCHASE_ORDERS,
    COMPONENT_HEADCOUNT,
    COMPONENT_BUDGETS,
    COMPONENT_CHANGE_ORDERS,
)

LABOR_COMPONENTS: tuple[str, ...] = (
    COMPONENT_PROJECT,
    COMPONENT_LABOR_ACTUALS,
    COMPONENT_CRAFT_TYPES,
    COMPONENT_PER_DIEM,
)


@dataclass(frozen=True)
class ForecastInputs:
    """Everything fetched for one project.  Unfetched components are empty."""

    project: Project
    labor_actuals: Sequence[LaborActualRecord] = ()
    crafts: Sequence[CraftType] = ()
    per_diem: Sequence[PerDiemRecord] = ()
    purchase_orders: Sequence[PurchaseOrderRecord] = ()
    headcount: Sequence[HeadcountForecastEntry] = ()
    budgets: Sequence[BudgetAllocation] = ()
    change_orders: Sequence[ChangeOrderRecord] = ()


class ProjectForecastService:
    """
    Computes a project's cost forecast on demand.

    Contract
    --------
    * ``get_forecast`` returns a complete ``ForecastResult`` or raises; it
      never returns a partial result.
    * The source is called from ``policy.fetch_workers`` threads at once.

    Guarantees
    ----------
    * Clock is injectable; ``as_of`` defaults to ``clock.today()``.
    * Calculation is single-threaded and deterministic.

    Non-goals
    ---------
    * Does NOT cache.  See ``forecast_kernel.utils.hashing.forecast_cache_key``
      for the only valid external cache key.
    """

    def __init__(
        self,
        source: ForecastDataSource,
        policy: ForecastPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._source = source
        self._policy = policy or get_active_policy()
        self._clock = clock or SystemClock()
        self._tables = ClassificationTables(
            cost_center_codes=dict(self._policy.cost_center_codes),
            synonyms=dict(self._policy.category_synonyms or DEFAULT_SYNONYMS),
        )

    @property
    def policy(self) -> ForecastPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def _fetchers(self, project_id: UUID) -> dict[str, Callable[[], Any]]:
        source = self._source
        return {
            COMPONENT_PROJECT: lambda: source.get_project(project_id),
            COMPONENT_LABOR_ACTUALS: lambda: source.list_labor_actuals(project_id),
            COMPONENT_CRAFT_TYPES: source.list_craft_types,
            COMPONENT_PER_DIEM: lambda: source.list_per_diem_costs(project_id),
            COMPONENT_PURCHASE_ORDERS: lambda: source.list_purchase_orders(project_id),
            COMPONENT_HEADCOUNT: lambda: source.list_headcount_forecasts(project_id),
            COMPONENT_BUDGETS: lambda: source.list_budget_allocations(project_id),
            COMPONENT_CHANGE_ORDERS: lambda: source.list_change_orders(project_id),
        }

    def fetch_inputs(
        self,
        project_id: UUID,
        components: Sequence[str] = ALL_COMPONENTS,
    ) -> ForecastInputs:
        """
        Fetch ``components`` concurrently.

        Raises:
            UpstreamFetchFailureError: a fetch raised; the original
                exception is chained.
            ProjectNotFoundError: the source returned no project.
        """
        fetchers = self._fetchers(project_id)
        unknown = set(components) - set(fetchers)
        if unknown:
            raise ValueError(f"Unknown forecast input components: {sorted(unknown)}")

        results: dict[str, Any] = {}
        with ThreadPoolExecutor(
            max_workers=self._policy.fetch_workers,
            thread_name_prefix="forecast-fetch",
        ) as pool:
            futures = {name: pool.submit(fetchers[name]) for name in components}
            # Collected in declaration order so the first failure reported
            # does not depend on thread timing.
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as exc:
                    for pending in futures.values():
                        pending.cancel()
                    logger.error(
                        "forecast_fetch_failed",
                        extra={
                            "project_id": str(project_id),
                            "component": name,
                            "error_type": type(exc).__name__,
                        },
                    )
                    raise UpstreamFetchFailureError(
                        name, str(project_id), f"{type(exc).__name__}: {exc}"
                    ) from exc

        project = results.get(COMPONENT_PROJECT)
        if project is None:
            raise ProjectNotFoundError(str(project_id))

        return ForecastInputs(
            project=project,
            labor_actuals=tuple(results.get(COMPONENT_LABOR_ACTUALS, ())),
            crafts=tuple(results.get(COMPONENT_CRAFT_TYPES, ())),
            per_diem=tuple(results.get(COMPONENT_PER_DIEM, ())),
            purchase_orders=tuple(results.get(COMPONENT_PURCHASE_ORDERS, ())),
            headcount=tuple(results.get(COMPONENT_HEADCOUNT, ())),
            budgets=tuple(results.get(COMPONENT_BUDGETS, ())),
            change_orders=tuple(results.get(COMPONENT_CHANGE_ORDERS, ())),
        )

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def _labor_lines(self, inputs: ForecastInputs) -> tuple[LaborLine, ...]:
        policy = self._policy
        selection = select_labor_source(
            inputs.labor_actuals,
            inputs.project.labor_source,
            project_id=str(inputs.project.id),
        )
        return cost_labor_records(
            inputs.labor_actuals,
            burden_rate=policy.burden_rate,
            crafts=inputs.crafts,
            source=selection.source,
            tables=self._tables,
            week_end_weekday=policy.week_end_weekday,
        )

    def _rate_window(self, inputs: ForecastInputs, as_of: date) -> tuple[LaborLine, ...]:
        return trailing_window(
            self._labor_lines(inputs),
            as_of,
            self._policy.trailing_weeks,
            self._policy.week_end_weekday,
        )

    def calculate(self, inputs: ForecastInputs, *, as_of: date) -> ForecastResult:
        """Run the engines over already-fetched inputs."""
        policy = self._policy
        project = inputs.project
        project_key = str(project.id)

        labor = aggregate_labor_actuals(
            inputs.labor_actuals,
            burden_rate=policy.burden_rate,
            crafts=inputs.crafts,
            per_diem=inputs.per_diem,
            canonical_source=project.labor_source,
            project_id=project_key,
            tables=self._tables,
            week_end_weekday=policy.week_end_weekday,
        )
        window = self._rate_window(inputs, as_of)
        future = project_future_labor(
            inputs.headcount,
            category_rates=calculate_running_rates(window, key_by=KEY_BY_CATEGORY),
            craft_rates=calculate_running_rates(window, key_by=KEY_BY_CRAFT),
            crafts=inputs.crafts,
            weeks_with_actuals=labor.weeks_with_actuals,
            category_weeks=labor.category_weeks,
            default_weekly_hours=policy.default_weekly_hours,
            fallback_rates=policy.fallback_rates,
            exclusion_scope=policy.forecast_exclusion_scope,
            week_end_weekday=policy.week_end_weekday,
        )
        rollup = rollup_purchase_orders(
            inputs.purchase_orders,
            budgets=inputs.budgets,
            tables=self._tables,
            excluded_statuses=policy.excluded_po_statuses,
            approved_only=policy.approved_pos_only,
            budget_default_categories=policy.budget_default_categories,
        )
        return reconcile_forecast(
            project,
            labor=labor,
            rollup=rollup,
            future=future,
            budgets=inputs.budgets,
            change_orders=inputs.change_orders,
            fail_on_unclassified=policy.fail_on_unclassified,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_forecast(self, project_id: UUID, *, as_of: date | None = None) -> ForecastResult:
        """Fetch, aggregate and reconcile one project's forecast."""
        as_of = as_of or self._clock.today()
        with LogContext.bind(
            project_id=str(project_id),
            as_of=as_of.isoformat(),
            policy_checksum=self._policy.checksum or None,
        ):
            logger.info("forecast_started", extra={"policy_name": self._policy.name})
            try:
                inputs = self.fetch_inputs(project_id)
                result = self.calculate(inputs, as_of=as_of)
            except ForecastKernelError as exc:
                logger.warning(
                    "forecast_failed",
                    extra={"error_code": exc.code, "error_type": type(exc).__name__},
                )
                raise

            logger.info(
                "forecast_completed",
                extra={
                    "estimate_at_completion": str(result.estimate_at_completion),
                    "percent_complete": str(result.percent_complete),
                },
            )
            return result

    def get_weekly_labor_costs(self, project_id: UUID) -> tuple[WeeklyLaborCost, ...]:
        """Per-week labor cost history, oldest first."""
        inputs = self.fetch_inputs(project_id, LABOR_COMPONENTS)
        return weekly_labor_costs(
            inputs.labor_actuals,
            burden_rate=self._policy.burden_rate,
            crafts=inputs.crafts,
            per_diem=inputs.per_diem,
            canonical_source=inputs.project.labor_source,
            project_id=str(project_id),
            tables=self._tables,
            week_end_weekday=self._policy.week_end_weekday,
        )

    def get_running_rates(
        self,
        project_id: UUID,
        *,
        as_of: date | None = None,
        key_by: str = KEY_BY_CATEGORY,
    ) -> dict[str, RunningRate]:
        """Trailing-window running rates keyed by category value or craft id."""
        as_of = as_of or self._clock.today()
        inputs = self.fetch_inputs(project_id, LABOR_COMPONENTS)
        return calculate_running_rates(self._rate_window(inputs, as_of), key_by=key_by)

    def get_composite_rate(
        self,
        project_id: UUID,
        *,
        as_of: date | None = None,
    ) -> CompositeRate:
        """Blended labor rate over the composite window and the recent weeks."""
        as_of = as_of or self._clock.today()
        inputs = self.fetch_inputs(project_id, LABOR_COMPONENTS)
        return composite_rate(
            self._labor_lines(inputs),
            as_of=as_of,
            weeks_back=self._policy.composite_weeks,
            recent_weeks=self._policy.recent_weeks,
            week_end_weekday=self._policy.week_end_weekday,
        )
