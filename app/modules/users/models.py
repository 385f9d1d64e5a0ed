# Supabase tables: user_profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user_profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- name: text (nullable)
- image: text (nullable)
- is_superadmin: boolean (not null, default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Roles reach a profile through user_roles (see app/modules/roles/models.py).
A profile is loaded with its roles embedded:
    user_profiles -> user_roles -> roles -> departments

Note: Supabase Auth app_metadata {"type": "super_user"} also marks a user as
superadmin. app_metadata is set server-side and cannot be modified by users.
"""
