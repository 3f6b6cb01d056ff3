# Menu items
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in repositories/supabase.py

"""
Table: menus
- id: uuid (primary key)
- name: text (not null)
- slug: text (not null) - unique among non-trashed items
- type: text (not null) - TABLE, PAGE, FORM, EXTERNAL, SEPARATOR
- table: uuid (nullable, foreign key to tables.id) - TABLE and FORM items
- parent: uuid (nullable, foreign key to menus.id)
- url: text (nullable) - derived for TABLE, FORM and PAGE items
- html: text (nullable) - PAGE content
- trashed: boolean (default false)
- trashed_at: timestamptz (nullable)
- created_at: timestamptz (default now())
- updated_at: timestamptz (default now())
"""
