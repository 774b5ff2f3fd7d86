"""Budget arithmetic shared by every reply that reports spend."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from jengatrack.domain.records import Project

NEAR_LIMIT_PERCENT = 80.0


@dataclass(frozen=True)
class BudgetSnapshot:
    budget: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: float

    @property
    def over_budget(self) -> bool:
        return self.remaining < 0

    @property
    def near_limit(self) -> bool:
        return not self.over_budget and self.percent_used >= NEAR_LIMIT_PERCENT


def compute_budget_snapshot(
    project: Project,
    expense_amounts: Iterable[Decimal],
    budget: Decimal | None = None,
) -> BudgetSnapshot:
    """Compute spent/remaining/percent-used for a project.

    Args:
        project: Project whose budget_amount is the baseline.
        expense_amounts: Amounts of the project's live expenses.
        budget: Override for project.budget_amount (a budget being set).

    Returns:
        BudgetSnapshot. A project without a positive budget reports 0%.
    """
    total_budget = project.budget_amount if budget is None else budget
    total_budget = total_budget or Decimal("0")
    spent = sum(expense_amounts, Decimal("0"))
    remaining = total_budget - spent

    if total_budget > 0:
        percent_used = float(spent / total_budget * 100)
    else:
        percent_used = 0.0

    return BudgetSnapshot(
        budget=total_budget,
        spent=spent,
        remaining=remaining,
        percent_used=percent_used,
    )
