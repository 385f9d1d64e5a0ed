"""
Test doubles and data factories.

FakeSupabase mirrors the subset of the Supabase client the app uses: the
chainable table query builder and auth.get_user.
"""

import copy
import itertools
from types import SimpleNamespace
from typing import Any, Dict, List, Optional


class FakeQuery:
    """Chainable query mirroring the subset of the postgrest builder the app uses"""

    def __init__(self, db: "FakeSupabase", table_name: str):
        self.db = db
        self.table_name = table_name
        self.operation = "select"
        self.payload: Any = None
        self.filters = []
        self._limit: Optional[int] = None
        self._offset = 0

    def select(self, *columns, **kwargs):
        self.operation = "select"
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def offset(self, count):
        self._offset = count
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table_name, self.operation))
        if self.table_name in self.db.failing_tables:
            raise RuntimeError(f"connection reset while querying {self.table_name}")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", f"{self.table_name}-{next(self.db.ids)}")
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.operation == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=copy.deepcopy(matched))

        if self.operation == "delete":
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=copy.deepcopy(matched))

        matched = matched[self._offset:]
        if self._limit is not None:
            matched = matched[:self._limit]
        return SimpleNamespace(data=copy.deepcopy(matched))


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}

    def add_token(self, token: str, user_id: str, email: str = "", app_metadata: Optional[dict] = None):
        self.users[token] = SimpleNamespace(
            id=user_id, email=email or f"{user_id}@example.com", app_metadata=app_metadata or {}
        )

    def get_user(self, jwt: str):
        if jwt not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.users[jwt])


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_tables = set()
        self.calls = []
        self.ids = itertools.count(1)
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, *rows: Dict[str, Any]):
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))


class FailingRoleStore:
    """Role store whose every lookup fails"""

    def __init__(self):
        self.calls = 0

    def get_roles_by_ids(self, role_ids):
        self.calls += 1
        raise ConnectionError("role store unreachable")


def make_role(
    role_id: str,
    name: str,
    permissions: Optional[Dict[str, Any]] = None,
    department_id: Optional[str] = None,
    is_system_role: bool = False,
    department_name: Optional[str] = None,
) -> Dict[str, Any]:
    role = {
        "id": role_id,
        "name": name,
        "permissions": permissions or {},
        "department_id": department_id,
        "is_system_role": is_system_role,
    }
    if department_id:
        role["departments"] = {"id": department_id, "name": department_name or department_id}
    return role


def make_profile(
    user_id: str,
    *roles: Dict[str, Any],
    is_superadmin: bool = False,
    email: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "id": user_id,
        "email": email or f"{user_id}@example.com",
        "name": user_id.title(),
        "is_superadmin": is_superadmin,
        "user_roles": [
            {"id": f"ur-{user_id}-{role['id']}", "user_id": user_id, "role_id": role["id"], "roles": role}
            for role in roles
        ],
    }
