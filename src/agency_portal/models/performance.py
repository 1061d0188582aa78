"""Rollup models produced by the aggregation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class AgentRollup:
    agent_key: str
    profile_id: int | None
    agent_name: str
    status: str = "Inactive"
    total_anp: Decimal = Decimal("0")
    monthly_anp: Decimal = Decimal("0")
    total_submissions: int = 0
    issued: int = 0
    pending: int = 0
    declined: int = 0
    conversion_rate: Decimal = Decimal("0")
    submission_ids: list[int] = field(default_factory=list)


@dataclass
class TeamRollup:
    total_team_anp: Decimal = Decimal("0")
    total_monthly_anp: Decimal = Decimal("0")
    total_submissions: int = 0
    total_issued: int = 0
    total_pending: int = 0
    total_declined: int = 0
    average_conversion_rate: Decimal = Decimal("0")


@dataclass
class TeamPerformance:
    per_agent: list[AgentRollup]
    team_totals: TeamRollup


@dataclass
class TrendBucket:
    month: str
    month_number: int
    issued: int = 0
    anp: Decimal = Decimal("0")
    premium: Decimal = Decimal("0")


@dataclass
class PolicyShare:
    policy_name: str
    count: int
    percentage: Decimal


@dataclass
class HistoryPoint:
    month: str
    value: Decimal
    trend: str


@dataclass
class StatHistory:
    stat_type: str
    title: str
    description: str
    unit: str
    prefix: str
    current_value: Decimal
    yearly_change: Decimal
    trend: str
    monthly_data: list[HistoryPoint]


@dataclass
class LeaderPerformance:
    id: int
    name: str
    ap_count: int
    active_aps: int
    activity_ratio: int
    total_anp: Decimal
    monthly_anp: Decimal
    total_cases: int
    monthly_cases: int
    status: str


@dataclass
class PartnerPerformance:
    id: int
    name: str
    al_name: str
    al_id: int | None
    join_date: str
    last_activity: str | None
    last_submission_at: str | None
    total_anp: Decimal
    monthly_anp: Decimal
    total_cases: int
    monthly_cases: int


@dataclass
class DashboardStats:
    total_als: int
    total_aps: int
    active_aps: int
    active_aps_last_hour: int
    total_anp: Decimal
    monthly_anp: Decimal
    total_cases: int
    monthly_cases: int
    pending_cases: int
    declined_cases: int
    policy_distribution: list[PolicyShare]
    monthly_trend: list[TrendBucket]
    filters: dict[str, object]


@dataclass
class PolicyDetails:
    policy_distribution: list[PolicyShare]
    monthly_trend: list[TrendBucket]
    total_cases: int
