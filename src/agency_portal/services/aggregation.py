"""Aggregation engine: folds submission records into performance rollups."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from agency_portal.core.errors import ValidationFailure
from agency_portal.core.premium import ZERO, coerce_amount, installment_amount
from agency_portal.models.performance import (
    AgentRollup,
    HistoryPoint,
    PolicyShare,
    StatHistory,
    TeamPerformance,
    TeamRollup,
    TrendBucket,
)
from agency_portal.models.profile import ROLE_AGENT_LEADER, ROLE_AGENT_PARTNER, Profile
from agency_portal.models.submission import SubmissionRecord

UNKNOWN_AGENT = "Unknown Agent"
UNKNOWN_POLICY = "Unknown Policy"
STATUS_ISSUED = "Issued"
STATUS_DECLINED = "Declined"
STATUS_PENDING = "Pending"

MONTH_NAMES = tuple(calendar.month_name[1:])
MONTH_ABBREVIATIONS = tuple(calendar.month_abbr[1:])

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"

LEADER_PERFORMING = "PERFORMING"
LEADER_AVERAGE = "AVERAGE"
LEADER_NEEDS_IMPROVEMENT = "NEEDS IMPROVEMENT"

STAT_ACTIVITY_RATIO = "activityRatio"
STAT_TOTAL_ANP = "totalANP"
STAT_MONTHLY_ANP = "monthlyANP"
STAT_TOTAL_CASES = "totalCases"
STAT_TOTAL_ALS = "totalALs"
STAT_TOTAL_APS = "totalAPs"

STAT_METADATA = {
    STAT_ACTIVITY_RATIO: ("Activity Ratio History", "Monthly activity ratio trend", "%", False),
    STAT_TOTAL_ANP: ("Total ANP History", "Cumulative Annual Premium growth", "", True),
    STAT_MONTHLY_ANP: ("Monthly ANP History", "Monthly ANP performance trend", "", True),
    STAT_TOTAL_CASES: ("Total Cases History", "Total policies issued trend", "", False),
    STAT_TOTAL_ALS: ("Agent Leaders History", "Number of Agent Leaders", "ALs", False),
    STAT_TOTAL_APS: ("Agent Partners History", "Number of Agent Partners", "APs", False),
}

ONE_DECIMAL = Decimal("0.1")
WHOLE = Decimal("1")


def percentage(part: int | Decimal, whole: int | Decimal, places: Decimal = ONE_DECIMAL) -> Decimal:
    """part/whole as a percentage; 0 when whole is 0."""
    if not whole:
        return ZERO.quantize(places)
    value = Decimal(part) / Decimal(whole) * 100
    return value.quantize(places, rounding=ROUND_HALF_UP)


def round_whole(value: Decimal) -> Decimal:
    return value.quantize(WHOLE, rounding=ROUND_HALF_UP)


def month_end(year: int, month: int) -> datetime:
    """Last instant of a calendar month; month 0 means December of the prior year."""
    if month < 1:
        year, month = year - 1, month + 12
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, 999999)


def in_month(moment: datetime | None, year: int, month: int) -> bool:
    return moment is not None and moment.year == year and moment.month == month


def is_active(last_submission_at: datetime | None, now: datetime, window: timedelta) -> bool:
    """True when the agent submitted within ``window`` of ``now``."""
    if last_submission_at is None:
        return False
    return now - last_submission_at < window


def agent_identity(record: SubmissionRecord) -> tuple[str, str]:
    """Return the grouping key and display name for a record's agent."""
    name = (record.agent_name or "").strip()
    if record.profile_id is not None:
        return f"profile:{record.profile_id}", name or UNKNOWN_AGENT
    label = (record.legacy_label or "").strip()
    if label:
        return f"label:{label}", label
    return "unknown", UNKNOWN_AGENT


def aggregate(
    records: Iterable[SubmissionRecord],
    now: datetime,
    active_window: timedelta = timedelta(hours=1),
) -> TeamPerformance:
    """
    Fold submissions into per-agent rollups plus team totals.

    Agents are keyed by profile id, so two agents sharing a name never merge.
    Cumulative ANP counts Issued premiums; the monthly figure sums installment
    amounts of Issued submissions created in ``now``'s calendar month. The team
    conversion rate is the mean of the per-agent rates.
    """
    per_agent: dict[str, AgentRollup] = {}
    team = TeamRollup()

    for record in records:
        key, name = agent_identity(record)
        rollup = per_agent.get(key)
        if rollup is None:
            rollup = AgentRollup(agent_key=key, profile_id=record.profile_id, agent_name=name)
            per_agent[key] = rollup
        if is_active(record.last_submission_at, now, active_window):
            rollup.status = "Active"

        rollup.total_submissions += 1
        rollup.submission_ids.append(record.id)
        team.total_submissions += 1

        if record.status == STATUS_ISSUED:
            premium = coerce_amount(record.premium_paid)
            rollup.issued += 1
            rollup.total_anp += premium
            team.total_issued += 1
            team.total_team_anp += premium
            if in_month(record.issued_at, now.year, now.month):
                modal = installment_amount(premium, record.mode_of_payment)
                rollup.monthly_anp += modal
                team.total_monthly_anp += modal
        elif record.status == STATUS_DECLINED:
            rollup.declined += 1
            team.total_declined += 1
        else:
            rollup.pending += 1
            team.total_pending += 1

    agents = list(per_agent.values())
    for rollup in agents:
        rollup.conversion_rate = percentage(rollup.issued, rollup.total_submissions)
    if agents:
        rate_sum = sum((rollup.conversion_rate for rollup in agents), ZERO)
        team.average_conversion_rate = (rate_sum / len(agents)).quantize(
            ONE_DECIMAL, rounding=ROUND_HALF_UP
        )
    else:
        team.average_conversion_rate = ZERO.quantize(ONE_DECIMAL)
    return TeamPerformance(per_agent=agents, team_totals=team)


def monthly_trend(records: Iterable[SubmissionRecord], year: int) -> list[TrendBucket]:
    """Twelve buckets of Issued counts, installment ANP and premium for ``year``."""
    buckets = [
        TrendBucket(month=MONTH_NAMES[index], month_number=index + 1) for index in range(12)
    ]
    for record in records:
        if record.status != STATUS_ISSUED or record.issued_at is None:
            continue
        if record.issued_at.year != year:
            continue
        bucket = buckets[record.issued_at.month - 1]
        bucket.issued += 1
        bucket.anp += installment_amount(record.premium_paid, record.mode_of_payment)
        bucket.premium += coerce_amount(record.premium_paid)
    return buckets


def policy_distribution(
    records: Iterable[SubmissionRecord],
    places: Decimal = WHOLE,
) -> list[PolicyShare]:
    """Count records per policy name, largest share first."""
    counts: dict[str, int] = {}
    total = 0
    for record in records:
        name = record.policy_name or UNKNOWN_POLICY
        counts[name] = counts.get(name, 0) + 1
        total += 1
    shares = [
        PolicyShare(policy_name=name, count=count, percentage=percentage(count, total, places))
        for name, count in counts.items()
    ]
    shares.sort(key=lambda share: share.count, reverse=True)
    return shares


def classify_leader(monthly_cases: int) -> str:
    if monthly_cases >= 7:
        return LEADER_PERFORMING
    if monthly_cases >= 4:
        return LEADER_AVERAGE
    return LEADER_NEEDS_IMPROVEMENT


def headcount(profiles: Iterable[Profile], role_code: str, as_of: datetime) -> int:
    """Profiles of a role created on or before ``as_of``."""
    return sum(
        1
        for profile in profiles
        if profile.role_code == role_code and profile.created_at <= as_of
    )


def classify_trend(value: Decimal, reference: Decimal) -> str:
    if value > reference:
        return TREND_UP
    if value < reference:
        return TREND_DOWN
    return TREND_STABLE


def _stat_value(
    stat_type: str,
    year: int,
    month: int,
    issued: list[SubmissionRecord],
    profiles: list[Profile],
) -> Decimal:
    if month < 1:
        year, month = year - 1, month + 12
    cutoff = month_end(year, month)
    month_records = [record for record in issued if in_month(record.issued_at, year, month)]

    if stat_type == STAT_ACTIVITY_RATIO:
        partner_ids = {
            profile.id
            for profile in profiles
            if profile.role_code == ROLE_AGENT_PARTNER and profile.created_at <= cutoff
        }
        active = {record.profile_id for record in month_records if record.profile_id in partner_ids}
        return percentage(len(active), len(partner_ids), WHOLE)
    if stat_type == STAT_TOTAL_ANP:
        total = sum(
            (
                coerce_amount(record.premium_paid)
                for record in issued
                if record.issued_at is not None and record.issued_at <= cutoff
            ),
            ZERO,
        )
        return round_whole(total)
    if stat_type == STAT_MONTHLY_ANP:
        total = sum(
            (installment_amount(record.premium_paid, record.mode_of_payment) for record in month_records),
            ZERO,
        )
        return round_whole(total)
    if stat_type == STAT_TOTAL_CASES:
        return Decimal(len(month_records))
    if stat_type == STAT_TOTAL_ALS:
        return Decimal(headcount(profiles, ROLE_AGENT_LEADER, cutoff))
    if stat_type == STAT_TOTAL_APS:
        return Decimal(headcount(profiles, ROLE_AGENT_PARTNER, cutoff))
    raise ValidationFailure(f"Unsupported statType: {stat_type}")


def monthly_history(
    stat_type: str,
    year: int,
    month: int,
    issued: Iterable[SubmissionRecord],
    profiles: Iterable[Profile],
    currency_prefix: str = "₱ ",
) -> StatHistory:
    """
    Recompute one statistic for every month from January up to ``month``.

    Each point is compared with the previous month, except January which is
    compared with January of the prior year. Headcounts are taken as of each
    month's last calendar day. The yearly change compares the selected month
    with the same month one year earlier.
    """
    if stat_type not in STAT_METADATA:
        raise ValidationFailure(f"Unsupported statType: {stat_type}")
    issued_records = [record for record in issued if record.status == STATUS_ISSUED]
    profile_list = list(profiles)

    points: list[HistoryPoint] = []
    current_value = ZERO
    for month_number in range(1, month + 1):
        value = _stat_value(stat_type, year, month_number, issued_records, profile_list)
        if month_number == 1:
            reference = _stat_value(stat_type, year - 1, 1, issued_records, profile_list)
        else:
            reference = _stat_value(stat_type, year, month_number - 1, issued_records, profile_list)
        points.append(
            HistoryPoint(
                month=MONTH_ABBREVIATIONS[month_number - 1],
                value=value,
                trend=classify_trend(value, reference),
            )
        )
        current_value = value

    prior_year_value = _stat_value(stat_type, year - 1, month, issued_records, profile_list)
    if prior_year_value > 0:
        yearly_change = ((current_value - prior_year_value) / prior_year_value * 100).quantize(
            ONE_DECIMAL, rounding=ROUND_HALF_UP
        )
    else:
        yearly_change = ZERO.quantize(ONE_DECIMAL)

    title, description, unit, is_money = STAT_METADATA[stat_type]
    return StatHistory(
        stat_type=stat_type,
        title=title,
        description=description,
        unit=unit,
        prefix=currency_prefix if is_money else "",
        current_value=current_value,
        yearly_change=yearly_change,
        trend=classify_trend(yearly_change, ZERO),
        monthly_data=points,
    )
