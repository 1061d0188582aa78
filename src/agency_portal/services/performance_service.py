"""Team and manager performance views built on the aggregation engine."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from agency_portal.core.config import PortalConfig
from agency_portal.core.premium import ZERO, coerce_amount, installment_amount
from agency_portal.core.schedule import parse_timestamp
from agency_portal.core.validation import validate_month, validate_year
from agency_portal.models.performance import (
    DashboardStats,
    LeaderPerformance,
    PartnerPerformance,
    PolicyDetails,
    StatHistory,
    TeamPerformance,
    TeamRollup,
)
from agency_portal.models.profile import ROLE_AGENT_LEADER, ROLE_AGENT_PARTNER
from agency_portal.models.submission import SubmissionRecord
from agency_portal.repositories.submission_repository import SubmissionRepository
from agency_portal.services import aggregation
from agency_portal.services.profile_service import ProfileService

LEADER_SORT_FIELDS = {
    "monthlyANP": "monthly_anp",
    "totalANP": "total_anp",
    "activityRatio": "activity_ratio",
    "monthlyCases": "monthly_cases",
    "totalCases": "total_cases",
}


def to_record(row: dict[str, Any]) -> SubmissionRecord:
    agent_name = f"{row.get('agent_first_name') or ''} {row.get('agent_last_name') or ''}".strip()
    return SubmissionRecord(
        id=int(row["sub_id"]),
        profile_id=row["profile_id"],
        agent_name=agent_name or None,
        legacy_label=row["submission_type"],
        policy_name=row["policy_name"],
        premium_paid=coerce_amount(row["premium_paid"]),
        mode_of_payment=row["mode_of_payment"] or "",
        status=row["status"],
        issued_at=parse_timestamp(row["issued_at"]),
        last_submission_at=parse_timestamp(row["agent_last_submission_at"]),
    )


def _premium_total(records: list[SubmissionRecord]) -> Decimal:
    return sum((record.premium_paid for record in records), ZERO)


def _installment_total(records: list[SubmissionRecord]) -> Decimal:
    return sum(
        (installment_amount(record.premium_paid, record.mode_of_payment) for record in records),
        ZERO,
    )


class PerformanceService:
    """Builds the agent, leader and managing-partner dashboards."""

    def __init__(
        self,
        submission_repo: SubmissionRepository,
        profile_service: ProfileService,
        portal_config: PortalConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._submission_repo = submission_repo
        self._profile_service = profile_service
        self._portal = portal_config
        self._clock = clock

    @property
    def _active_window(self) -> timedelta:
        return timedelta(minutes=self._portal.active_window_minutes)

    def _period(self, year: int | None, month: int | None) -> tuple[int, int]:
        now = self._clock()
        return (
            validate_year(year) if year is not None else now.year,
            validate_month(month) if month is not None else now.month,
        )

    def _records(self, profile_ids: list[int] | None = None, status: str | None = None) -> list[SubmissionRecord]:
        rows = self._submission_repo.list_submissions(profile_ids=profile_ids, status=status)
        return [to_record(row) for row in rows]

    def _team_ids(self, leader_id: int) -> list[int]:
        return [leader_id, *self._profile_service.team_member_ids(leader_id)]

    def team_performance(self, profile_id: int | None = None) -> TeamPerformance:
        """Rollup of a leader's active reports, or of every submission when no leader is given."""
        profile_ids = None
        if profile_id is not None:
            profile_ids = self._profile_service.team_member_ids(profile_id)
            if not profile_ids:
                return TeamPerformance(per_agent=[], team_totals=TeamRollup())
        return aggregation.aggregate(self._records(profile_ids), self._clock(), self._active_window)

    def leader_performance(
        self,
        year: int | None = None,
        month: int | None = None,
        status: str | None = None,
        sort_by: str | None = None,
    ) -> list[LeaderPerformance]:
        """One row per agent leader covering the leader and their reports."""
        year, month = self._period(year, month)
        by_profile: dict[int, list[SubmissionRecord]] = {}
        for record in self._records():
            if record.profile_id is not None:
                by_profile.setdefault(record.profile_id, []).append(record)

        leaders: list[LeaderPerformance] = []
        for leader in self._profile_service.list_profiles(ROLE_AGENT_LEADER):
            partner_ids = self._profile_service.team_member_ids(leader.id)
            team_records = [
                record
                for member_id in [leader.id, *partner_ids]
                for record in by_profile.get(member_id, [])
            ]
            issued = [record for record in team_records if record.status == aggregation.STATUS_ISSUED]
            monthly = [record for record in issued if aggregation.in_month(record.issued_at, year, month)]
            active_partners = {record.profile_id for record in monthly if record.profile_id in partner_ids}
            ratio = aggregation.percentage(len(active_partners), len(partner_ids), aggregation.WHOLE)
            row = LeaderPerformance(
                id=leader.id,
                name=leader.display_name,
                ap_count=len(partner_ids),
                active_aps=len(active_partners),
                activity_ratio=int(ratio),
                total_anp=aggregation.round_whole(_premium_total(issued)),
                monthly_anp=aggregation.round_whole(_installment_total(monthly)),
                total_cases=len(issued),
                monthly_cases=len(monthly),
                status=aggregation.classify_leader(len(monthly)),
            )
            if not status or row.status == status:
                leaders.append(row)

        attribute = LEADER_SORT_FIELDS.get(sort_by or "", "monthly_anp")
        leaders.sort(key=lambda row: getattr(row, attribute), reverse=True)
        return leaders

    def partner_performance(
        self,
        year: int | None = None,
        month: int | None = None,
        leader_id: int | None = None,
        min_cases: int | None = None,
        max_cases: int | None = None,
    ) -> list[PartnerPerformance]:
        """One row per agent partner, optionally limited to one leader's team."""
        year, month = self._period(year, month)
        partners = self._profile_service.list_profiles(ROLE_AGENT_PARTNER)
        if leader_id is not None:
            team = set(self._profile_service.team_member_ids(leader_id))
            if not team:
                return []
            partners = [partner for partner in partners if partner.id in team]

        by_profile: dict[int, list[SubmissionRecord]] = {}
        for record in self._records([partner.id for partner in partners]):
            by_profile.setdefault(record.profile_id, []).append(record)

        rows: list[PartnerPerformance] = []
        for partner in partners:
            records = by_profile.get(partner.id, [])
            issued = [record for record in records if record.status == aggregation.STATUS_ISSUED]
            monthly = [record for record in issued if aggregation.in_month(record.issued_at, year, month)]
            if min_cases is not None and len(monthly) < min_cases:
                continue
            if max_cases is not None and len(monthly) > max_cases:
                continue

            supervisor = self._profile_service.supervisor_of(partner.id)
            dated = [record.issued_at for record in records if record.issued_at is not None]
            last_activity = max(dated).date().isoformat() if dated else None
            rows.append(
                PartnerPerformance(
                    id=partner.id,
                    name=partner.display_name,
                    al_name=(
                        f"{supervisor['first_name']} {supervisor['last_name']}".strip()
                        if supervisor
                        else "Unassigned"
                    ),
                    al_id=supervisor["id"] if supervisor else None,
                    join_date=partner.created_at.date().isoformat(),
                    last_activity=last_activity,
                    last_submission_at=(
                        partner.last_submission_at.isoformat(timespec="seconds")
                        if partner.last_submission_at
                        else None
                    ),
                    total_anp=aggregation.round_whole(_premium_total(issued)),
                    monthly_anp=aggregation.round_whole(_installment_total(monthly)),
                    total_cases=len(issued),
                    monthly_cases=len(monthly),
                )
            )
        return rows

    def dashboard_stats(
        self,
        year: int | None = None,
        month: int | None = None,
        leader_id: int | None = None,
        partner_id: int | None = None,
        status: str | None = None,
    ) -> DashboardStats:
        """Managing-partner headline numbers and chart data."""
        year, month = self._period(year, month)
        now = self._clock()
        leaders = self._profile_service.list_profiles(ROLE_AGENT_LEADER)
        partners = self._profile_service.list_profiles(ROLE_AGENT_PARTNER)

        profile_ids = None
        if leader_id is not None:
            team = self._profile_service.team_member_ids(leader_id)
            partners = [partner for partner in partners if partner.id in team]
            profile_ids = [leader_id, *team]
        if partner_id is not None:
            profile_ids = [partner_id]

        records = self._records(profile_ids, status or None)
        issued = [record for record in records if record.status == aggregation.STATUS_ISSUED]
        monthly = [record for record in issued if aggregation.in_month(record.issued_at, year, month)]
        partner_ids = {partner.id for partner in partners}
        year_issued = [
            record for record in issued if record.issued_at is not None and record.issued_at.year == year
        ]

        return DashboardStats(
            total_als=len(leaders),
            total_aps=len(partners),
            active_aps=len({record.profile_id for record in monthly if record.profile_id in partner_ids}),
            active_aps_last_hour=sum(
                1
                for partner in partners
                if aggregation.is_active(partner.last_submission_at, now, self._active_window)
            ),
            total_anp=aggregation.round_whole(_premium_total(issued)),
            monthly_anp=aggregation.round_whole(_installment_total(monthly)),
            total_cases=len(issued),
            monthly_cases=len(monthly),
            pending_cases=sum(1 for record in records if record.status == aggregation.STATUS_PENDING),
            declined_cases=sum(1 for record in records if record.status == aggregation.STATUS_DECLINED),
            policy_distribution=aggregation.policy_distribution(year_issued),
            monthly_trend=aggregation.monthly_trend(year_issued, year),
            filters={
                "year": year,
                "month": month,
                "alId": leader_id,
                "apId": partner_id,
                "status": status or None,
            },
        )

    def monthly_history(self, stat_type: str, year: int | None = None, month: int | None = None) -> StatHistory:
        year, month = self._period(year, month)
        return aggregation.monthly_history(
            stat_type,
            year,
            month,
            self._records(status=aggregation.STATUS_ISSUED),
            self._profile_service.list_profiles(),
            currency_prefix=self._portal.currency_prefix,
        )

    def policy_details(self, leader_id: int, year: int | None = None) -> PolicyDetails:
        """Issued policy mix and monthly trend for one leader's team."""
        self._profile_service.get_profile(leader_id)
        year = year or self._clock().year
        issued = self._records(self._team_ids(leader_id), aggregation.STATUS_ISSUED)
        return PolicyDetails(
            policy_distribution=aggregation.policy_distribution(issued, aggregation.ONE_DECIMAL),
            monthly_trend=aggregation.monthly_trend(issued, year),
            total_cases=len(issued),
        )
