"""Single Touch Payroll reporting: generation, validation and export."""

from au_payroll.stp.csv_exporter import export_stp_to_csv, generate_stp_summary_csv
from au_payroll.stp.generator import (
    MissingAbnError,
    MissingBusinessNameError,
    MissingTfnError,
    NoEligiblePayeesError,
    StpPreconditionError,
    generate_stp_report,
    is_stp_ready,
)
from au_payroll.stp.json_exporter import export_stp_to_json, generate_ato_json_payload
from au_payroll.stp.types import StpReport, StpValidationResult
from au_payroll.stp.validator import validate_stp_report

__all__ = [
    "export_stp_to_csv",
    "export_stp_to_json",
    "generate_ato_json_payload",
    "generate_stp_report",
    "generate_stp_summary_csv",
    "is_stp_ready",
    "validate_stp_report",
    "MissingAbnError",
    "MissingBusinessNameError",
    "MissingTfnError",
    "NoEligiblePayeesError",
    "StpPreconditionError",
    "StpReport",
    "StpValidationResult",
]
