"""
Exclusion constraint rejecting overlapping active bookings on one resource.

Only PostgreSQL supports it; on other backends the row lock taken by the
booking service is the only guard.
"""

from django.db import migrations

CREATE_SQL = [
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    """
    ALTER TABLE bookings_booking
    ADD CONSTRAINT booking_no_overlap_active
    EXCLUDE USING gist (
        resource_id WITH =,
        tstzrange("start", "end", '[)') WITH &&
    )
    WHERE (deleted_at IS NULL AND status IN ('pending', 'confirmed', 'blocked'))
    """,
]

DROP_SQL = "ALTER TABLE bookings_booking DROP CONSTRAINT IF EXISTS booking_no_overlap_active"


def add_overlap_guard(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    for statement in CREATE_SQL:
        schema_editor.execute(statement)


def drop_overlap_guard(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(DROP_SQL)


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(add_overlap_guard, drop_overlap_guard),
    ]
