# Supabase tables: tables, fields
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in repositories/supabase.py

"""
Expected Supabase table structure:

tables:
- id: uuid (primary key, default: gen_random_uuid())
- name: text (not null)
- slug: text (not null) - unique among rows where trashed = false
- description: text (nullable)
- logo: text (nullable) - storage reference
- fields: uuid[] (not null, default: '{}') - ordered field ids
- type: text (not null, default: 'TABLE') - values: TABLE, FIELD_GROUP
- configuration: jsonb (not null) - style, visibility, collaboration, owner,
  administrators, field_order {list, form}
- methods: jsonb (not null) - on_load, before_save, after_save: {code}
- synthesized_schema: jsonb (not null, default: '{}') - cached projection of fields
- trashed: boolean (not null, default: false)
- trashed_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

The rows of every table live in the document table named by
settings.rows_table (default "rows"):
- id: uuid (primary key) - mirrors data->>_id
- collection: text (not null, indexed) - "table_<table id>"
- data: jsonb (not null) - the row document
- created_at: timestamp (default: now())
"""
