"""Role-based permission checks.

The core services never consult this module; the HTTP layer resolves the
caller's role and checks it before invoking an operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR = "hr"
    ACCOUNTING = "accounting"
    ADMIN = "admin"


class Permission(str, Enum):
    CLOCK_OWN = "clock_own"
    REQUEST_CORRECTION = "request_correction"
    RESOLVE_CORRECTION = "resolve_correction"
    VIEW_TEAM_TIMESHEETS = "view_team_timesheets"
    REQUEST_SWAP = "request_swap"
    APPROVE_SWAP = "approve_swap"
    MANAGE_PERIODS = "manage_periods"
    RUN_PAYROLL = "run_payroll"
    VIEW_PAYROLL = "view_payroll"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.EMPLOYEE: frozenset(
        {Permission.CLOCK_OWN, Permission.REQUEST_CORRECTION, Permission.REQUEST_SWAP}
    ),
    Role.MANAGER: frozenset(
        {
            Permission.CLOCK_OWN,
            Permission.REQUEST_CORRECTION,
            Permission.RESOLVE_CORRECTION,
            Permission.VIEW_TEAM_TIMESHEETS,
            Permission.REQUEST_SWAP,
            Permission.APPROVE_SWAP,
        }
    ),
    Role.HR: frozenset(
        {
            Permission.CLOCK_OWN,
            Permission.REQUEST_CORRECTION,
            Permission.RESOLVE_CORRECTION,
            Permission.VIEW_TEAM_TIMESHEETS,
            Permission.VIEW_PAYROLL,
        }
    ),
    Role.ACCOUNTING: frozenset(
        {
            Permission.CLOCK_OWN,
            Permission.VIEW_TEAM_TIMESHEETS,
            Permission.MANAGE_PERIODS,
            Permission.RUN_PAYROLL,
            Permission.VIEW_PAYROLL,
        }
    ),
    Role.ADMIN: frozenset(Permission),
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""

    employee_id: UUID
    role: Role

    def has(self, permission: Permission) -> bool:
        return has_permission(self.role, permission)


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def can_act_for(actor: Actor, owner_id: UUID) -> bool:
    """Whether ``actor`` may act on records owned by ``owner_id``.

    Employees act only for themselves; anyone who can view team timesheets
    may act for others.
    """
    return actor.employee_id == owner_id or actor.has(Permission.VIEW_TEAM_TIMESHEETS)


def can_request_correction(actor: Actor, owner_id: UUID) -> bool:
    """Owners request corrections for their own entries; managers for their team."""
    if actor.employee_id == owner_id:
        return actor.has(Permission.REQUEST_CORRECTION)
    return actor.has(Permission.RESOLVE_CORRECTION)
