# Supabase table: fields
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in repositories/supabase.py

"""
Expected Supabase table structure:

fields:
- id: uuid (primary key, default: gen_random_uuid())
- name: text (not null)
- slug: text (not null) - unique within the owning table's field list
- type: text (not null) - TEXT_SHORT, TEXT_LONG, DROPDOWN, DATE, RELATIONSHIP,
  FILE, FIELD_GROUP, REACTION, EVALUATION, CATEGORY
- configuration: jsonb (not null) - required, multiple, format, listing,
  filtering, default_value, relationship {table, field, order}, dropdown,
  category (tree of {id, label, children}), group {id, slug}
- trashed: boolean (not null, default: false)
- trashed_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

A field has no reference to its table: membership is the tables.fields array.
"""
