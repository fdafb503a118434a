"""Role variants held by a user.

Storage keeps a single string per user (``admin``, ``center-admin``,
``student`` or ``admin-<className>``). Everything above the storage layer
works with the variants below and converts at the edges with
``parse_role`` / ``format_role``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


GLOBAL_ADMIN_TOKEN = 'admin'
CENTER_ADMIN_TOKEN = 'center-admin'
STUDENT_TOKEN = 'student'
CLASS_ADMIN_PREFIX = 'admin-'


@dataclass(frozen=True)
class GlobalAdmin:
    pass


@dataclass(frozen=True)
class CenterAdmin:
    pass


@dataclass(frozen=True)
class ClassAdmin:
    class_name: str

    def administers(self, class_name: str | None) -> bool:
        return self.class_name.strip().casefold() == str(class_name or '').strip().casefold()


@dataclass(frozen=True)
class Student:
    pass


Role = Union[GlobalAdmin, CenterAdmin, ClassAdmin, Student]

GLOBAL_ADMIN = GlobalAdmin()
CENTER_ADMIN = CenterAdmin()
STUDENT = Student()


def parse_role(value: str | None) -> Role:
    token = str(value or '').strip()
    lowered = token.lower()
    if lowered == GLOBAL_ADMIN_TOKEN:
        return GLOBAL_ADMIN
    if lowered == CENTER_ADMIN_TOKEN:
        return CENTER_ADMIN
    if lowered.startswith(CLASS_ADMIN_PREFIX):
        class_name = token[len(CLASS_ADMIN_PREFIX):].strip()
        if class_name:
            return ClassAdmin(class_name)
    # 'student', legacy 'teacher' and anything unrecognised carry no privileges.
    return STUDENT


def format_role(role: Role) -> str:
    if isinstance(role, GlobalAdmin):
        return GLOBAL_ADMIN_TOKEN
    if isinstance(role, CenterAdmin):
        return CENTER_ADMIN_TOKEN
    if isinstance(role, ClassAdmin):
        return f'{CLASS_ADMIN_PREFIX}{role.class_name}'
    if isinstance(role, Student):
        return STUDENT_TOKEN
    raise TypeError(f'Unknown role variant: {role!r}')


def role_rank(role: Role) -> int:
    if isinstance(role, GlobalAdmin):
        return 3
    if isinstance(role, CenterAdmin):
        return 2
    if isinstance(role, ClassAdmin):
        return 1
    if isinstance(role, Student):
        return 0
    raise TypeError(f'Unknown role variant: {role!r}')
