# accounts/roles.py
"""
Role groups.

Roles are fixed per membership; these sets decide which roles may call
which commands. Keep them here so policies and views agree.
"""

from accounts.models import Membership

Role = Membership.Role

# Create/update accounts, post transactions, create and approve budgets.
MANAGER_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.FINANCIAL_MANAGER,
    Role.MINISTER,
    Role.COMMITTEE_CHAIR,
    Role.DEPARTMENT_HEAD,
})

# Delete transactions.
LEDGER_ADMIN_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.FINANCIAL_MANAGER,
})

# Single-step expense decisions and deleting other people's reports.
EXPENSE_DECISION_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.FINANCIAL_MANAGER,
    Role.COMMITTEE_CHAIR,
})

# May act on any approval step regardless of the step's role.
ELEVATED_APPROVER_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.FINANCIAL_MANAGER,
})

# The fixed three-step approval chain: step order -> (role, label).
APPROVAL_CHAIN = (
    (1, Role.DEPARTMENT_ACCOUNTANT, "Department accountant review"),
    (2, Role.DEPARTMENT_HEAD, "Department head approval"),
    (3, Role.COMMITTEE_CHAIR, "Committee chair approval"),
)

STEP_ROLES = {order: role for order, role, _label in APPROVAL_CHAIN}
