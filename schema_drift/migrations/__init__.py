"""
Migrations package for schema-drift: a single up/down step pair.
"""

from schema_drift.migrations.step import PHONE_NUMBER_STEP, MigrationStep, phone_number_migration

__all__ = ["MigrationStep", "PHONE_NUMBER_STEP", "phone_number_migration"]
