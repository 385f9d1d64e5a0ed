# Supabase tables read by the relationship checks in app/core/access_control.py
# This file documents the expected database schema
# These tables are owned by the project/task/workflow services; this service only reads them

"""
Expected Supabase table structure (columns used here):

projects:
- id: uuid (primary key)
- account_id: uuid (foreign key to accounts.id)
- created_by: uuid (foreign key to user_profiles.id)
- assigned_user_id: uuid (nullable) - project owner

project_assignments:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id)
- user_id: uuid (foreign key to user_profiles.id)
- removed_at: timestamp (nullable) - set when the user is taken off the project;
  only rows with removed_at IS NULL grant access

tasks:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id)
- assigned_to: uuid (nullable, foreign key to user_profiles.id)

account_members:
- id: uuid (primary key)
- account_id: uuid (foreign key to accounts.id)
- user_id: uuid (foreign key to user_profiles.id)

workflow_instances:
- id: uuid (primary key)
- project_id: uuid (nullable, foreign key to projects.id)

workflow_history:
- id: uuid (primary key)
- workflow_instance_id: uuid (foreign key to workflow_instances.id)

form_responses:
- id: uuid (primary key)
- workflow_history_id: uuid (nullable, foreign key to workflow_history.id) - set when
  the response was submitted as part of a workflow step

Department membership needs no table of its own: it is the chain
user_roles -> roles.department_id on the loaded profile.
"""
