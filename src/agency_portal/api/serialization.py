"""Convert service results into JSON-ready structures."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from typing import Any

# dashboard keys that keep their upper-case acronyms on the wire
CAMEL_OVERRIDES = {
    "total_anp": "totalANP",
    "monthly_anp": "monthlyANP",
    "total_team_anp": "totalTeamANP",
    "total_monthly_anp": "totalMonthlyANP",
    "total_als": "totalALs",
    "total_aps": "totalAPs",
    "active_aps": "activeAPs",
    "active_aps_last_hour": "activeAPsLastHour",
    "ap_count": "apCount",
    "per_agent": "performanceByAP",
    "team_totals": "teamStats",
}


def camelize(name: str) -> str:
    if name in CAMEL_OVERRIDES:
        return CAMEL_OVERRIDES[name]
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_payload(value: Any, camel: bool = False) -> Any:
    """Dataclasses become dicts, Decimals floats and dates ISO strings."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            (camelize(field.name) if camel else field.name): to_payload(getattr(value, field.name), camel)
            for field in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {
            (camelize(key) if camel and isinstance(key, str) else key): to_payload(item, camel)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [to_payload(item, camel) for item in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def envelope(data: Any = None, camel: bool = False, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = to_payload(data, camel)
    body.update(extra)
    return body
