"""Request bodies for the REST surface. Field names travel as camelCase."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmitMonitoringRequest(CamelModel):
    policy_type: str
    serial_number: Union[str, int]
    premium_paid: Optional[Union[str, float]] = None
    mode_of_payment: str = ""
    policy_date: Optional[str] = None
    client_first_name: str = ""
    client_last_name: str = ""
    client_email: str = ""
    profile_id: Optional[int] = None
    intermediary_email: str = ""
    submission_type: str = ""


class StatusUpdateRequest(CamelModel):
    status: str


class AttestationRequest(CamelModel):
    serial_number: Union[str, int, None] = None


class PreviewRequest(CamelModel):
    form_data: dict[str, Any] = Field(default_factory=dict)
    serial_number: str = ""


class CreatePolicyRequest(CamelModel):
    policy_name: str
    form_type: str = ""
    request_type: str = ""
    agency: Optional[str] = None
    requirements: list[Any] = Field(default_factory=list)
    active_status: bool = True


class CreateProfileRequest(CamelModel):
    first_name: str
    last_name: str
    email: str
    role_code: str


class AssignSupervisorRequest(CamelModel):
    report_to_id: int
