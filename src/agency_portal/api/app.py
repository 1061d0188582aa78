"""FastAPI application exposing the portal's REST surface."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from agency_portal.api.schemas import (
    AssignSupervisorRequest,
    AttestationRequest,
    CreatePolicyRequest,
    CreateProfileRequest,
    PreviewRequest,
    StatusUpdateRequest,
    SubmitMonitoringRequest,
)
from agency_portal.api.serialization import envelope, to_payload
from agency_portal.core.container import ServiceContainer
from agency_portal.core.errors import PortalError, ValidationFailure
from agency_portal.models.policy import PolicyCreate
from agency_portal.models.profile import ProfileCreate
from agency_portal.models.serial import SERIAL_TYPE_DEFAULT
from agency_portal.models.submission import DocumentUpload, SubmissionCreate

logger = structlog.get_logger()


def create_app(container: ServiceContainer) -> FastAPI:
    """Build the application around an already wired container."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        container.pool.close_all()

    app = FastAPI(title="Agency Portal", lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PortalError)
    def handle_portal_error(request: Request, exc: PortalError) -> JSONResponse:
        logger.warning(
            "request_failed",
            path=request.url.path,
            status_code=exc.status_code,
            error=str(exc),
        )
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc)})

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [
            f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}" for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"success": False, "message": "; ".join(messages)})

    @app.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_crashed", path=request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})

    serials = container.serial_service
    submissions = container.submission_service
    payments = container.payment_service
    performance = container.performance_service
    policies = container.policy_service
    profiles = container.profile_service

    @app.get("/api/health")
    def health():
        return {"success": True, "status": "ok"}

    # policies

    @app.get("/api/policies/active")
    def active_policies():
        return envelope(policies.list_active())

    @app.post("/api/policies", status_code=201)
    def create_policy(payload: CreatePolicyRequest):
        policy = policies.create_policy(
            PolicyCreate(
                policy_name=payload.policy_name,
                form_type=payload.form_type,
                request_type=payload.request_type,
                agency=payload.agency,
                requirements=payload.requirements,
                active_status=payload.active_status,
            )
        )
        return envelope(policy)

    @app.patch("/api/policies/{policy_id}/toggle")
    def toggle_policy(policy_id: int):
        return envelope(policies.toggle_active(policy_id))

    # profiles

    @app.get("/api/profiles")
    def list_profiles(role: Optional[str] = None):
        return envelope(profiles.list_profiles(role))

    @app.post("/api/profiles", status_code=201)
    def create_profile(payload: CreateProfileRequest):
        profile = profiles.create_profile(
            ProfileCreate(
                first_name=payload.first_name,
                last_name=payload.last_name,
                email=payload.email,
                role_code=payload.role_code,
            )
        )
        return envelope(profile)

    @app.put("/api/profiles/{profile_id}/supervisor")
    def assign_supervisor(profile_id: int, payload: AssignSupervisorRequest):
        profiles.assign_supervisor(profile_id, payload.report_to_id)
        return envelope()

    # serial numbers

    @app.get("/api/serial-numbers/available/{policy_type}")
    def available_serial(policy_type: str):
        serial = serials.provision(policy_type)
        return {"success": True, "requiresSerial": True, "serialNumber": serial.serial_number}

    @app.get("/api/admin/serial-numbers")
    def list_serials(serial_type: Optional[str] = Query(None, alias="serialType")):
        items, counts = serials.list_serials(serial_type)
        return envelope(items, stats=to_payload(counts, camel=True))

    @app.post("/api/admin/serial-numbers/import")
    def import_serials(
        file: UploadFile = File(...),
        serial_type: str = Form(SERIAL_TYPE_DEFAULT, alias="serialType"),
    ):
        text = file.file.read().decode("utf-8-sig")
        result = serials.import_serials(text.splitlines(), serial_type)
        return envelope(result, camel=True)

    # submissions

    @app.post("/api/monitoring/submit", status_code=201)
    def submit_monitoring(payload: SubmitMonitoringRequest):
        submission = submissions.submit_monitoring(
            SubmissionCreate(
                policy_type=payload.policy_type,
                serial_number=str(payload.serial_number),
                premium_paid=payload.premium_paid,
                mode_of_payment=payload.mode_of_payment,
                policy_date=payload.policy_date or "",
                client_first_name=payload.client_first_name,
                client_last_name=payload.client_last_name,
                client_email=payload.client_email,
                profile_id=payload.profile_id,
                intermediary_email=payload.intermediary_email,
                submission_type=payload.submission_type,
            )
        )
        return envelope(submission)

    @app.get("/api/monitoring/all")
    def monitoring(profile_id: Optional[int] = Query(None, alias="profileId")):
        return envelope(submissions.list_monitoring(profile_id))

    @app.get("/api/customers")
    def customers(profile_id: Optional[int] = Query(None, alias="profileId")):
        return envelope(submissions.list_customers(profile_id))

    @app.get("/api/form-submissions")
    def form_submissions(profile_id: Optional[int] = Query(None, alias="profileId")):
        return envelope(submissions.list_submissions(profile_id))

    @app.post("/api/form-submissions")
    def submit_documents(
        serial_number: str = Form(..., alias="serialNumber"),
        form_data: str = Form("{}", alias="formData"),
        files: Optional[list[UploadFile]] = File(None),
    ):
        try:
            parsed = json.loads(form_data or "{}")
        except json.JSONDecodeError as error:
            raise ValidationFailure("formData must be valid JSON.") from error
        uploads = [
            DocumentUpload(
                file_name=upload.filename or "upload",
                content_type=upload.content_type or "application/octet-stream",
                content=upload.file.read(),
            )
            for upload in files or []
        ]
        result = submissions.submit_documents(serial_number, parsed, uploads)
        return envelope(result.submission, generatedPdfUrl=result.generated_summary_url)

    @app.patch("/api/form-submissions/{submission_id}/status")
    def update_status(submission_id: int, payload: StatusUpdateRequest):
        return envelope(submissions.update_status(submission_id, payload.status))

    @app.get("/api/submissions/details/{serial_number}")
    def submission_details(serial_number: str):
        return envelope(submissions.get_details(serial_number), camel=True)

    @app.post("/api/preview-application")
    def preview_application(payload: PreviewRequest):
        content = submissions.preview_summary(payload.form_data, payload.serial_number)
        return Response(content=content, media_type=submissions.summary_content_type)

    @app.post("/api/submissions/{submission_id}/pay")
    def record_payment(submission_id: int):
        result = payments.record_payment(submission_id)
        return {
            "success": True,
            "message": "Payment recorded successfully",
            "nextDate": result.next_date,
        }

    # attestation

    @app.post("/api/vsp/send-attestation")
    def send_attestation(payload: AttestationRequest):
        serial = str(payload.serial_number or "").strip()
        if not serial:
            raise ValidationFailure("Serial Number is missing.")
        return {"success": True, "message": submissions.send_attestation(serial)}

    @app.get("/api/vsp/verify-attestation")
    def verify_attestation(serial: str, response: str, client: str = ""):
        return envelope(submissions.record_attestation(serial, response, client), camel=True)

    # performance

    @app.get("/api/performance/all")
    def team_performance(profile_id: Optional[int] = Query(None, alias="profileId")):
        return envelope(performance.team_performance(profile_id), camel=True)

    @app.get("/api/mp/al-performance")
    def leader_performance(
        year: Optional[int] = None,
        month: Optional[int] = None,
        status: Optional[str] = None,
        sort_by: Optional[str] = Query(None, alias="sortBy"),
    ):
        return envelope(performance.leader_performance(year, month, status, sort_by), camel=True)

    @app.get("/api/mp/ap-performance")
    def partner_performance(
        year: Optional[int] = None,
        month: Optional[int] = None,
        al_id: Optional[int] = Query(None, alias="alId"),
        min_cases: Optional[int] = Query(None, alias="minCases"),
        max_cases: Optional[int] = Query(None, alias="maxCases"),
    ):
        rows = performance.partner_performance(year, month, al_id, min_cases, max_cases)
        return envelope(rows, camel=True)

    @app.get("/api/mp/dashboard-stats")
    def dashboard_stats(
        year: Optional[int] = None,
        month: Optional[int] = None,
        al_id: Optional[int] = Query(None, alias="alId"),
        ap_id: Optional[int] = Query(None, alias="apId"),
        status: Optional[str] = None,
    ):
        return envelope(performance.dashboard_stats(year, month, al_id, ap_id, status), camel=True)

    @app.get("/api/mp/monthly-history")
    def monthly_history(
        year: Optional[int] = None,
        month: Optional[int] = None,
        stat_type: Optional[str] = Query(None, alias="statType"),
    ):
        if not stat_type:
            raise ValidationFailure("statType is required")
        return envelope(performance.monthly_history(stat_type, year, month), camel=True)

    @app.get("/api/mp/policy-details/{al_id}")
    def policy_details(al_id: int, year: Optional[int] = None):
        return envelope(performance.policy_details(al_id, year), camel=True)

    return app
