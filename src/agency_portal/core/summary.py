"""Plain-text application summary attached to document submissions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol


class SummaryRenderer(Protocol):
    content_type: str
    extension: str

    def render(self, form_data: dict[str, Any], serial_number: str) -> bytes:
        ...


def _yes_no(value: Any) -> str:
    return "Yes" if value else "No"


class TextSummaryRenderer:
    content_type = "text/plain"
    extension = "txt"

    def render(self, form_data: dict[str, Any], serial_number: str) -> bytes:
        medical = form_data.get("medical") or {}
        lines = [
            "Application Summary",
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "Client Information",
            f"Serial Number: {serial_number}",
            f"Name: {form_data.get('clientFirstName', '')} {form_data.get('clientLastName', '')}".rstrip(),
            f"Email: {form_data.get('clientEmail') or 'N/A'}",
            "",
            "Policy Details",
            f"Policy Type: {form_data.get('policyType', '')}",
            f"Form Category: {form_data.get('formType', '')}",
            f"Mode of Payment: {form_data.get('modeOfPayment', '')}",
            f"Policy Date: {form_data.get('policyDate', '')}",
            f"Virtual Selling Process (VSP): {_yes_no(form_data.get('isVSP'))}",
            f"Underwriting Option: {'GAE' if form_data.get('isGAE') else 'Standard'}",
        ]
        if medical:
            lines += [
                "",
                "Medical & Personal Declaration",
                f"Height: {medical.get('height') or 'N/A'}",
                f"Weight: {medical.get('weight') or 'N/A'}",
                f"Diagnosed with Critical Illness: {medical.get('diagnosed') or 'No'}",
                f"Hospitalized (Last 2 Years): {medical.get('hospitalized') or 'No'}",
                f"Smoker: {medical.get('smoker') or 'No'}",
                f"Alcohol Consumer: {medical.get('alcohol') or 'No'}",
            ]
        lines += ["", "--- End of Summary ---", ""]
        return "\n".join(lines).encode("utf-8")
