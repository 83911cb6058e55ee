"""
Policy evaluation.

Pure functions implement the evaluation semantics:

- evaluate_mask(): first-match-wins masking of a single value
- evaluate_visibility(): AND across row access rules, OR within each rule
- evaluate_row(): row filters first, then independent column masks

The Evaluator wraps them for callers: it resolves the acting role, looks up
the dataset binding in a snapshot, and turns evaluation errors into hidden
rows so one malformed row never blocks a batch.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import Field

from policykit.exceptions import EvaluationError
from policykit.models.base import BaseGovernanceModel, get_reference_date
from policykit.models.bindings import PolicyBinding
from policykit.models.context import EvaluationContext
from policykit.models.enums import PolicyKind
from policykit.models.policies import MaskingRule, RowAccessRule

if TYPE_CHECKING:
    from policykit.snapshot import PolicySnapshot

logger = logging.getLogger(__name__)


class TraceEntry(BaseGovernanceModel):
    """
    One step of a decision: which policy ran and which case decided it.

    Attributes:
        policy: Policy name
        kind: MASKING or ROW_ACCESS
        target: Column (masking) or attribute (row access) the policy read
        case_index: Index of the deciding case, None for default / no match
        outcome: Row visibility for ROW_ACCESS, transform kind for MASKING
    """
    policy: str
    kind: PolicyKind
    target: str
    case_index: Optional[int] = None
    outcome: Any = None

    @property
    def used_default(self) -> bool:
        return self.case_index is None


class AccessDecision(BaseGovernanceModel):
    """
    Result of evaluating one row for one acting role.

    `row` is None whenever `visible` is False.
    """
    dataset: str
    role: str
    visible: bool
    row: Optional[Dict[str, Any]] = None
    trace: Tuple[TraceEntry, ...] = Field(default_factory=tuple)
    warnings: Tuple[str, ...] = Field(default_factory=tuple)
    error: Optional[str] = None


# =============================================================================
# PURE EVALUATION FUNCTIONS
# =============================================================================

def evaluate_mask(rule: MaskingRule, ctx: EvaluationContext, value: Any) -> Any:
    """
    Mask a value: apply the first matching case's transform, else the default.

    Raises:
        EvaluationError: If value does not match the rule's attribute type
    """
    return rule.evaluate(ctx, value)


def evaluate_visibility(
    rules: Sequence[RowAccessRule],
    ctx: EvaluationContext,
    row: Mapping[str, Any],
) -> bool:
    """
    Decide row visibility: every rule must hold.

    An empty rule list leaves the row visible.

    Raises:
        EvaluationError: If an attribute a rule needs is missing or mistyped
    """
    return all(rule.evaluate(ctx, row) for rule in rules)


def evaluate_row(
    binding: PolicyBinding,
    ctx: EvaluationContext,
    row: Mapping[str, Any],
) -> AccessDecision:
    """
    Filter then project one row through a dataset binding.

    Row rules run first and stop at the first rule that hides the row; no
    column transform runs for a hidden row. Visible rows get each masked
    column transformed independently, other columns pass through. Masked
    columns absent from the row are skipped.

    Raises:
        EvaluationError: On missing or mistyped attributes
    """
    trace: List[TraceEntry] = []

    for rule in binding.row_rules:
        visible, case_index = rule.decide(ctx, row)
        trace.append(TraceEntry(
            policy=rule.name,
            kind=PolicyKind.ROW_ACCESS,
            target=rule.attribute,
            case_index=case_index,
            outcome=visible,
        ))
        if not visible:
            return AccessDecision(
                dataset=binding.dataset,
                role=ctx.role,
                visible=False,
                trace=tuple(trace),
            )

    projected = dict(row)
    for column, mask in binding.masks.items():
        if column not in projected:
            continue
        case_index, transform = mask.select(ctx)
        projected[column] = mask.evaluate(ctx, projected[column], column=column)
        trace.append(TraceEntry(
            policy=mask.name,
            kind=PolicyKind.MASKING,
            target=column,
            case_index=case_index,
            outcome=transform.kind.value,
        ))

    return AccessDecision(
        dataset=binding.dataset,
        role=ctx.role,
        visible=True,
        row=projected,
        trace=tuple(trace),
    )


# =============================================================================
# EVALUATOR
# =============================================================================

class Evaluator:
    """
    Evaluates access requests against one immutable PolicySnapshot.

    Holds no mutable state, so one instance can serve many threads.

    Usage:
        evaluator = snapshot.evaluator()
        decision = evaluator.evaluate("IR_ANALYST_ROLE", "DIM_STUDENT", row)
        if decision.visible:
            use(decision.row)
    """

    def __init__(
        self,
        snapshot: PolicySnapshot,
        clock: Callable[[], date] = get_reference_date,
    ) -> None:
        """
        Initialize the evaluator.

        Args:
            snapshot: Loaded policy configuration
            clock: Source of the reference date for time-window predicates
        """
        self._snapshot = snapshot
        self._clock = clock

    @property
    def snapshot(self) -> PolicySnapshot:
        return self._snapshot

    def context(self, acting_role: str, reference_date: Optional[date] = None) -> EvaluationContext:
        """Build the evaluation context for an acting role."""
        return EvaluationContext.for_role(
            acting_role,
            self._snapshot.registry,
            reference_date=reference_date or self._clock(),
        )

    def evaluate(
        self,
        acting_role: str,
        dataset_id: str,
        row: Mapping[str, Any],
        reference_date: Optional[date] = None,
    ) -> AccessDecision:
        """
        Evaluate one row of a dataset for an acting role.

        Args:
            acting_role: Role making the request
            dataset_id: Dataset the row belongs to
            row: Attribute values of the row
            reference_date: Clock override for this request

        Returns:
            AccessDecision (not visible if the row was malformed)

        Raises:
            KeyError: If the dataset has no binding
        """
        binding = self._snapshot.binding(dataset_id)
        ctx = self.context(acting_role, reference_date)
        return self._decide(binding, ctx, row, _role_warnings(ctx))

    def evaluate_many(
        self,
        acting_role: str,
        dataset_id: str,
        rows: Iterable[Mapping[str, Any]],
        reference_date: Optional[date] = None,
    ) -> List[AccessDecision]:
        """
        Evaluate a batch of rows with one shared context.

        Malformed rows are hidden and logged; the rest of the batch continues.
        """
        binding = self._snapshot.binding(dataset_id)
        ctx = self.context(acting_role, reference_date)
        role_warnings = _role_warnings(ctx)
        decisions = [self._decide(binding, ctx, row, role_warnings) for row in rows]

        hidden = sum(1 for d in decisions if not d.visible)
        logger.debug(f"{dataset_id}: {acting_role} sees {len(decisions) - hidden}/{len(decisions)} rows")
        return decisions

    def filter_rows(
        self,
        acting_role: str,
        dataset_id: str,
        rows: Iterable[Mapping[str, Any]],
        reference_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Return only the visible rows, with masks applied."""
        return [
            d.row for d in self.evaluate_many(acting_role, dataset_id, rows, reference_date)
            if d.visible and d.row is not None
        ]

    def mask_value(
        self,
        acting_role: str,
        policy_name: str,
        value: Any,
        reference_date: Optional[date] = None,
    ) -> Any:
        """
        Apply a named masking policy to a single value.

        Raises:
            KeyError: If the policy is not defined
            EvaluationError: If the value does not match the policy's type
        """
        rule = self._snapshot.masking_rule(policy_name)
        return evaluate_mask(rule, self.context(acting_role, reference_date), value)

    def _decide(
        self,
        binding: PolicyBinding,
        ctx: EvaluationContext,
        row: Mapping[str, Any],
        role_warnings: Tuple[str, ...],
    ) -> AccessDecision:
        try:
            decision = evaluate_row(binding, ctx, row)
        except EvaluationError as e:
            logger.error(f"Hiding malformed row in {binding.dataset} for {ctx.role}: {e}")
            return AccessDecision(
                dataset=binding.dataset,
                role=ctx.role,
                visible=False,
                warnings=role_warnings,
                error=str(e),
            )
        if role_warnings:
            decision = decision.model_copy(update={"warnings": role_warnings})
        return decision


def _role_warnings(ctx: EvaluationContext) -> Tuple[str, ...]:
    if ctx.known_role:
        return ()
    return (f"Unknown role '{ctx.role}': evaluated with no memberships",)


__all__ = [
    "AccessDecision",
    "Evaluator",
    "TraceEntry",
    "evaluate_mask",
    "evaluate_row",
    "evaluate_visibility",
]
