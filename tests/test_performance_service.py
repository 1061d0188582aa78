"""Tests for team, leader and managing-partner dashboards."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from agency_portal.core.errors import NotFoundError, ValidationFailure
from agency_portal.models.policy import PolicyCreate
from agency_portal.models.profile import ProfileCreate
from agency_portal.models.submission import SubmissionCreate


def seed_team(container, clock) -> dict:
    profiles = container.profile_service
    leader = profiles.create_profile(
        ProfileCreate("Lea", "Santos", "lea@example.com", "AL", created_at=datetime(2024, 1, 1))
    )
    ana = profiles.create_profile(
        ProfileCreate("Ana", "Reyes", "ana@example.com", "AP", created_at=datetime(2024, 6, 1))
    )
    ben = profiles.create_profile(
        ProfileCreate("Ben", "Cruz", "ben@example.com", "AP", created_at=datetime(2024, 6, 1))
    )
    cy = profiles.create_profile(
        ProfileCreate("Cy", "Lim", "cy@example.com", "AP", created_at=datetime(2024, 6, 1))
    )
    profiles.assign_supervisor(ana.id, leader.id)
    profiles.assign_supervisor(ben.id, leader.id)

    container.policy_service.create_policy(PolicyCreate(policy_name="Eazy Health"))
    container.policy_service.create_policy(PolicyCreate(policy_name="Allianz Secure Pro"))

    def submit(serial, agent, policy, premium, mode, moment, issue=True):
        clock.moment = moment
        submission = container.submission_service.submit_monitoring(
            SubmissionCreate(
                policy_type=policy,
                serial_number=serial,
                premium_paid=premium,
                mode_of_payment=mode,
                policy_date=moment.date().isoformat(),
                client_first_name="Client",
                client_last_name=serial,
                client_email=f"client{serial}@example.com",
                profile_id=agent.id,
            )
        )
        if issue:
            container.submission_service.update_status(submission.id, "Issued")
        return submission

    submit("60000002", ana, "Allianz Secure Pro", "50000", "Annual", datetime(2025, 2, 10, 9, 0))
    submit("60000001", ana, "Eazy Health", "120000", "Monthly", datetime(2025, 3, 3, 9, 0))
    submit("60000003", ben, "Eazy Health", "80000", "Monthly", datetime(2025, 3, 5, 9, 0), issue=False)
    submit("60000004", cy, "Eazy Health", "40000", "Quarterly", datetime(2025, 3, 15, 9, 30))
    clock.moment = datetime(2025, 3, 15, 10, 0)
    return {"leader": leader, "ana": ana, "ben": ben, "cy": cy}


def test_team_performance_covers_active_reports(container, clock) -> None:
    team = seed_team(container, clock)

    result = container.performance_service.team_performance(team["leader"].id)

    names = {rollup.agent_name for rollup in result.per_agent}
    assert names == {"Ana Reyes", "Ben Cruz"}
    assert result.team_totals.total_submissions == 3
    assert result.team_totals.total_issued == 2
    assert result.team_totals.total_team_anp == Decimal("170000")
    assert result.team_totals.total_monthly_anp == Decimal("10000")


def test_team_performance_for_leader_without_reports(container, clock) -> None:
    team = seed_team(container, clock)

    result = container.performance_service.team_performance(team["cy"].id)

    assert result.per_agent == []
    assert result.team_totals.total_submissions == 0


def test_leader_performance(container, clock) -> None:
    team = seed_team(container, clock)

    rows = container.performance_service.leader_performance(2025, 3)

    assert len(rows) == 1
    row = rows[0]
    assert row.id == team["leader"].id
    assert row.name == "Lea Santos"
    assert row.ap_count == 2
    assert row.active_aps == 1
    assert row.activity_ratio == 50
    assert row.total_anp == Decimal("170000")
    assert row.monthly_anp == Decimal("10000")
    assert row.total_cases == 2
    assert row.monthly_cases == 1
    assert row.status == "NEEDS IMPROVEMENT"
    assert container.performance_service.leader_performance(2025, 3, status="PERFORMING") == []


def test_partner_performance(container, clock) -> None:
    team = seed_team(container, clock)

    rows = {row.name: row for row in container.performance_service.partner_performance(2025, 3)}

    assert set(rows) == {"Ana Reyes", "Ben Cruz", "Cy Lim"}
    assert rows["Ana Reyes"].al_name == "Lea Santos"
    assert rows["Ana Reyes"].al_id == team["leader"].id
    assert rows["Ana Reyes"].total_cases == 2
    assert rows["Ana Reyes"].monthly_cases == 1
    assert rows["Ana Reyes"].last_activity == "2025-03-03"
    assert rows["Cy Lim"].al_name == "Unassigned"
    assert rows["Cy Lim"].monthly_anp == Decimal("10000")
    assert rows["Ben Cruz"].total_cases == 0

    in_team = container.performance_service.partner_performance(2025, 3, leader_id=team["leader"].id)
    assert {row.name for row in in_team} == {"Ana Reyes", "Ben Cruz"}

    busy = container.performance_service.partner_performance(2025, 3, min_cases=1)
    assert {row.name for row in busy} == {"Ana Reyes", "Cy Lim"}


def test_dashboard_stats(container, clock) -> None:
    team = seed_team(container, clock)

    stats = container.performance_service.dashboard_stats(2025, 3)

    assert stats.total_als == 1
    assert stats.total_aps == 3
    assert stats.active_aps == 2
    assert stats.active_aps_last_hour == 1
    assert stats.total_anp == Decimal("210000")
    assert stats.monthly_anp == Decimal("20000")
    assert stats.total_cases == 3
    assert stats.monthly_cases == 2
    assert stats.pending_cases == 1
    assert stats.declined_cases == 0
    assert stats.policy_distribution[0].policy_name == "Eazy Health"
    assert stats.monthly_trend[2].issued == 2
    assert stats.filters["month"] == 3

    scoped = container.performance_service.dashboard_stats(2025, 3, leader_id=team["leader"].id)
    assert scoped.total_aps == 2
    assert scoped.total_cases == 2
    assert scoped.filters["alId"] == team["leader"].id


def test_dashboard_rejects_bad_month(container) -> None:
    with pytest.raises(ValidationFailure):
        container.performance_service.dashboard_stats(2025, 13)


def test_policy_details(container, clock) -> None:
    team = seed_team(container, clock)

    details = container.performance_service.policy_details(team["leader"].id, 2025)

    assert details.total_cases == 2
    assert sorted((share.policy_name, share.percentage) for share in details.policy_distribution) == [
        ("Allianz Secure Pro", Decimal("50.0")),
        ("Eazy Health", Decimal("50.0")),
    ]
    assert details.monthly_trend[1].issued == 1
    with pytest.raises(NotFoundError):
        container.performance_service.policy_details(9999)


def test_monthly_history_through_service(container, clock) -> None:
    seed_team(container, clock)

    history = container.performance_service.monthly_history("totalCases", 2025, 3)

    assert [point.value for point in history.monthly_data] == [Decimal("0"), Decimal("1"), Decimal("2")]
