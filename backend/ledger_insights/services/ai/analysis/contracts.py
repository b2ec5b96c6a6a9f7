"""Analysis scope contracts — the canonical ``FinancialAnalysis`` schema.

Field names on the wire are camelCase (``totalSpend``, ``potentialSavings``);
Python attributes are snake_case. Models are frozen and validate strictly:
a string where a number is expected is rejected rather than coerced.
Arrays arrive as JSON lists and are stored as tuples.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr
from pydantic.alias_generators import to_camel

Impact = Literal["High", "Medium", "Low"]


class _Contract(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        allow_inf_nan=False,
        extra="ignore",
    )


class Summary(_Contract):
    total_spend: StrictFloat
    total_budget: StrictFloat
    burn_rate: StrictStr
    top_category: StrictStr


class MonthlySpend(_Contract):
    month: StrictStr
    amount: StrictFloat


class CategoryShare(_Contract):
    category: StrictStr
    percentage: StrictFloat = Field(ge=0.0, le=100.0)


class VendorSpend(_Contract):
    vendor: StrictStr
    amount: StrictFloat


class SpendPoint(_Contract):
    date: StrictStr
    amount: StrictFloat


class Charts(_Contract):
    monthly_spend: tuple[MonthlySpend, ...]
    category_distribution: tuple[CategoryShare, ...]
    vendor_spend: tuple[VendorSpend, ...]
    spend_over_time: tuple[SpendPoint, ...]

    @property
    def category_total(self) -> float:
        return sum(c.percentage for c in self.category_distribution)


class Suggestion(_Contract):
    title: StrictStr
    description: StrictStr
    impact: Impact
    potential_savings: StrictFloat = Field(ge=0.0)


class FinancialAnalysis(_Contract):
    """Structured output of one analysis run. Immutable once validated."""

    summary: Summary
    charts: Charts
    insights: tuple[StrictStr, ...]
    suggestions: tuple[Suggestion, ...]

    def ranked_suggestions(self) -> list[Suggestion]:
        """Suggestions by descending ``potential_savings``; ties keep service order."""
        return sorted(self.suggestions, key=lambda s: -s.potential_savings)

    def to_view(self) -> dict[str, Any]:
        """camelCase document for the rendering layer, suggestions ranked."""
        data = self.model_dump(by_alias=True, mode="json")
        data["suggestions"] = [s.model_dump(by_alias=True, mode="json") for s in self.ranked_suggestions()]
        return data
