"""
forecast_engines.classifier -- Ordered-rule cost category classification.

Responsibility:
    Assign every raw labor or purchase-order record to exactly one
    ``CostCategory`` by trying an ordered list of pure rules, first match
    wins.  Records no rule can place are reported as unclassified.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only ``forecast_kernel`` domain types and logging.
    Consumed by the labor actuals aggregator and the purchase order rollup.

Rule order (``DEFAULT_RULES``):
    1. ``explicit_category``    -- the enum category already on the record.
    2. ``reference_category``   -- category text of the referenced craft or
       cost code, matched against names, labels and synonyms.
    3. ``cost_center_code``     -- numeric cost center table
       (2000 equipment, 3000 materials, 4000 subcontracts, 5000 small tools).
    4. ``budget_category_text`` -- free-text budget category, matched
       case-insensitively against names, labels and synonyms.

Invariants enforced:
    - The classifier never raises and never guesses: a record that matches
      no rule is unclassified, never silently put into OTHER.
    - ``allowed`` narrows the admissible categories (labor records may only
      land in labor categories, POs only in non-labor ones); a match outside
      the allowed set is treated as no match.

Failure modes:
    - None.  Callers decide whether unclassified records are fatal.

Usage:
    from forecast_engines.classifier import classify, ClassificationTables
    from forecast_kernel.domain import CategoryHints

    outcome = classify(
        CategoryHints(cost_center_code="3000"),
        tables=ClassificationTables(),
    )
    outcome.category  # CostCategory.MATERIALS
    outcome.rule      # "cost_center_code"
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import cached_property

from forecast_kernel.domain.categories import CATEGORY_LABELS, CostCategory
from forecast_kernel.domain.records import CategoryHints

DEFAULT_COST_CENTER_CODES: Mapping[str, CostCategory] = {
    "2000": CostCategory.EQUIPMENT,
    "3000": CostCategory.MATERIALS,
    "4000": CostCategory.SUBCONTRACTS,
    "5000": CostCategory.SMALL_TOOLS,
}

DEFAULT_SYNONYMS: Mapping[str, CostCategory] = {
    "direct": CostCategory.LABOR_DIRECT,
    "indirect": CostCategory.LABOR_INDIRECT,
    "staff": CostCategory.LABOR_STAFF,
    "material": CostCategory.MATERIALS,
    "materials": CostCategory.MATERIALS,
    "equipment": CostCategory.EQUIPMENT,
    "subcontract": CostCategory.SUBCONTRACTS,
    "subcontracts": CostCategory.SUBCONTRACTS,
    "subcontractor": CostCategory.SUBCONTRACTS,
    "subcontractors": CostCategory.SUBCONTRACTS,
    "small tools": CostCategory.SMALL_TOOLS,
    "consumables": CostCategory.SMALL_TOOLS,
    "small tools & consumables": CostCategory.SMALL_TOOLS,
    "small tools and consumables": CostCategory.SMALL_TOOLS,
}


def normalize_text(text: str) -> str:
    """Lower-case, underscores to spaces, collapse whitespace."""
    return " ".join(text.replace("_", " ").lower().split())


@dataclass(frozen=True)
class ClassificationTables:
    """Lookup tables the text and code rules match against.

    ``synonyms`` extends (never replaces) the category names and display
    labels, which always match.
    """

    cost_center_codes: Mapping[str, CostCategory] = field(
        default_factory=lambda: dict(DEFAULT_COST_CENTER_CODES)
    )
    synonyms: Mapping[str, CostCategory] = field(
        default_factory=lambda: dict(DEFAULT_SYNONYMS)
    )

    def match_text(self, text: str | None) -> CostCategory | None:
        if not text:
            return None
        key = normalize_text(text)
        if not key:
            return None
        return self._text_index.get(key)

    @cached_property
    def _text_index(self) -> dict[str, CostCategory]:
        index: dict[str, CostCategory] = {}
        for category in CostCategory:
            index[normalize_text(category.value)] = category
            index[normalize_text(CATEGORY_LABELS[category])] = category
        for text, category in self.synonyms.items():
            index[normalize_text(text)] = category
        return index


ClassifierRule = Callable[[CategoryHints, ClassificationTables], "CostCategory | None"]


def explicit_category(hints: CategoryHints, tables: ClassificationTables) -> CostCategory | None:
    return hints.explicit


def reference_category(hints: CategoryHints, tables: ClassificationTables) -> CostCategory | None:
    return tables.match_text(hints.reference_category)


def cost_center_code(hints: CategoryHints, tables: ClassificationTables) -> CostCategory | None:
    if not hints.cost_center_code:
        return None
    return tables.cost_center_codes.get(hints.cost_center_code.strip())


def budget_category_text(hints: CategoryHints, tables: ClassificationTables) -> CostCategory | None:
    return tables.match_text(hints.budget_category_text)


DEFAULT_RULES: tuple[ClassifierRule, ...] = (
    explicit_category,
    reference_category,
    cost_center_code,
    budget_category_text,
)


@dataclass(frozen=True)
class Classification:
    """Outcome for one record. ``category`` is None when unclassified."""

    category: CostCategory | None
    rule: str | None = None
    reference: str | None = None

    @property
    def is_classified(self) -> bool:
        return self.category is not None


@dataclass(frozen=True)
class ClassificationSummary:
    """Counts over a batch of classifications."""

    classified: int = 0
    unclassified: int = 0
    unclassified_references: tuple[str, ...] = ()
    rule_counts: Mapping[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.classified + self.unclassified

    def add(self, outcome: Classification) -> ClassificationSummary:
        """New summary with ``outcome`` folded in."""
        if outcome.is_classified:
            counts = dict(self.rule_counts)
            counts[outcome.rule] = counts.get(outcome.rule, 0) + 1
            return ClassificationSummary(
                classified=self.classified + 1,
                unclassified=self.unclassified,
                unclassified_references=self.unclassified_references,
                rule_counts=counts,
            )
        references = self.unclassified_references
        if outcome.reference is not None:
            references = references + (outcome.reference,)
        return ClassificationSummary(
            classified=self.classified,
            unclassified=self.unclassified + 1,
            unclassified_references=references,
            rule_counts=self.rule_counts,
        )


def classify(
    hints: CategoryHints,
    *,
    tables: ClassificationTables | None = None,
    rules: Iterable[ClassifierRule] = DEFAULT_RULES,
    allowed: Iterable[CostCategory] | None = None,
) -> Classification:
    """Run ``rules`` in order and return the first admissible match."""
    tables = tables or ClassificationTables()
    admissible = frozenset(allowed) if allowed is not None else None
    for rule in rules:
        category = rule(hints, tables)
        if category is None:
            continue
        if admissible is not None and category not in admissible:
            continue
        return Classification(
            category=category,
            rule=rule.__name__,
            reference=hints.reference,
        )
    return Classification(category=None, reference=hints.reference)
