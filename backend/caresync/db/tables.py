"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "institution",
    "provider",
    "appointment_type",
    "ehr_department",
    "provider_availability",
    "appointment_find_cache",
    "provider_availability_sync_log",
)
