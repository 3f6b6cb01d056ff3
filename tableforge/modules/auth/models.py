# Supabase Auth plus the application's user profile tables
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in repositories/supabase.py

"""
Supabase Auth (auth.users) verifies bearer tokens. The principal's role is
read from app_metadata.role (MASTER | ADMINISTRATOR | MANAGER | REGISTERED).

user_profiles:
- id: uuid (primary key, same id as auth.users.id)
- name: text (nullable)
- email: text (nullable)
- status: text (not null, default: 'ACTIVE') - values: ACTIVE, INACTIVE
- group_id: uuid (foreign key to user_groups.id, nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

user_groups:
- id: uuid (primary key)
- name: text (not null)
- slug: text (unique, not null) - MASTER, ADMINISTRATOR, MANAGER, REGISTERED
- description: text (nullable)
- created_at: timestamp (default: now())

permissions:
- id: uuid (primary key)
- name: text (not null)
- slug: text (unique, not null) - one of the twelve table permissions, e.g. VIEW_ROW
- description: text (nullable)

group_permissions:
- id: uuid (primary key)
- group_id: uuid (foreign key to user_groups.id, not null)
- permission_id: uuid (foreign key to permissions.id, not null)
- unique constraint on (group_id, permission_id)
"""
