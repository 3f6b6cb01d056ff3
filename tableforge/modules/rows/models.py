# Rows of dynamic tables
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in repositories/supabase.py

"""
Rows are schema-less documents stored in settings.rows_table (default "rows"):
- id: uuid (primary key) - mirrors data->>_id
- collection: text (not null, indexed) - "table_<table id>"
- data: jsonb (not null)

A row document always carries _id, creator, trashed, trashed_at, created_at
and updated_at, plus one key per non-trashed field slug of its table, shaped
by the table's synthesized_schema:
- TEXT_SHORT, TEXT_LONG, DROPDOWN, CATEGORY: string (array when multiple)
- DATE: ISO 8601 string
- RELATIONSHIP, FILE: referenced document id (array when multiple)
- REACTION, EVALUATION: array of ids in the reactions / evaluations collections
- FIELD_GROUP: array of embedded documents shaped by the group table schema

Reactions and evaluations live in the same table under the collections
"reactions" and "evaluations", one document per user, row and field:
_id, user, table, row, field, type (LIKE | UNLIKE) or value (number),
created_at, updated_at.

Keys of trashed fields are left in place and simply ignored. Renaming a
field moves its values to the new key and removes the old one.
"""
