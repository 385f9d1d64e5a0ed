# Supabase tables: roles, user_roles, departments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

departments:
- id: uuid (primary key)
- name: text (not null, unique)
- description: text (nullable)
- created_at: timestamp (default: now())

roles:
- id: uuid (primary key)
- name: text (not null) - e.g., "Superadmin", "Unassigned", "Department Head"
- description: text (nullable)
- permissions: jsonb (not null, default: '{}') - map of permission key -> boolean,
  e.g., {"view_projects": true, "manage_projects": false}
- department_id: uuid (foreign key to departments.id, nullable) - scopes the role to a department
- is_system_role: boolean (not null, default: false) - Superadmin / Unassigned, cannot be deleted
- hierarchy_level: integer (nullable)
- display_order: integer (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

user_roles:
- id: uuid (primary key)
- user_id: uuid (foreign key to user_profiles.id, not null)
- role_id: uuid (foreign key to roles.id, not null)
- assigned_at: timestamp (default: now())
- unique constraint on (user_id, role_id)
"""
