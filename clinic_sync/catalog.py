from typing import Dict

from clinic_sync.config import SyncJob

# Columns every sheet keeps in front, whether or not a batch carries them.
DEFAULT_JOBS: Dict[str, SyncJob] = {
    "appointments": SyncJob(
        name="appointments",
        endpoint="individual_appointments",
        sheet="Appointments",
        curated_columns=(
            "id",
            "starts_at",
            "ends_at",
            "patient_name",
            "appointment_type.links.self",
            "practitioner.links.self",
            "business.links.self",
            "did_not_arrive",
            "cancelled_at",
            "notes",
        ),
        date_field="starts_at",
        days_back=30,
        days_forward=30,
    ),
    "patients": SyncJob(
        name="patients",
        endpoint="patients",
        sheet="Patients",
        curated_columns=(
            "id",
            "first_name",
            "last_name",
            "date_of_birth",
            "email",
            "patient_phone_numbers",
            "created_at",
            "updated_at",
        ),
    ),
    "practitioners": SyncJob(
        name="practitioners",
        endpoint="practitioners",
        sheet="Practitioners",
        curated_columns=("id", "first_name", "last_name", "title", "active"),
    ),
    "appointment_types": SyncJob(
        name="appointment_types",
        endpoint="appointment_types",
        sheet="Appointment Types",
        curated_columns=("id", "name", "category", "duration_in_minutes"),
    ),
    "businesses": SyncJob(
        name="businesses",
        endpoint="businesses",
        sheet="Businesses",
        curated_columns=("id", "business_name", "city", "state", "time_zone"),
    ),
    "invoices": SyncJob(
        name="invoices",
        endpoint="invoices",
        sheet="Invoices",
        curated_columns=(
            "id",
            "number",
            "issue_date",
            "status_description",
            "total_amount",
            "net_amount",
            "patient.links.self",
        ),
        date_field="issue_date",
        days_back=30,
        days_forward=0,
    ),
}
