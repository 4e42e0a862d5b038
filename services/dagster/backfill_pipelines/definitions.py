"""Dagster Definitions - Repository Configuration.

Defines jobs and resources for the province backfill.
"""

from dagster import Definitions, EnvVar

from .jobs import province_backfill_job, province_rollback_job
from .resources import DocumentStoreResource


# =============================================================================
# Definitions
# =============================================================================

defs = Definitions(
    jobs=[
        province_backfill_job,
        province_rollback_job,
    ],
    resources={
        "document_store": DocumentStoreResource(
            connection_string=EnvVar("MONGO_CONNECTION_STRING"),
            database="dealership_erp",
            audit_collection="migrations",
        ),
    },
)
