# tests/conftest.py
"""
Pytest fixtures for the church ledger tests.

Every fixture builds rows directly through the ORM; the commands under
test are called with an ActorContext built by ``actor_for``.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from accounting.codes import derive_level, derive_order
from accounting.models import AccountCode
from accounts.authz import actor_for
from accounts.models import Church, Department, Membership
from budgets.execution import seed_execution
from budgets.models import Budget, BudgetItem


User = get_user_model()
Role = Membership.Role


# =============================================================================
# Church & Member Fixtures
# =============================================================================

@pytest.fixture
def church(db):
    """Create a test church."""
    return Church.objects.create(name="Grace Church", slug="grace")


@pytest.fixture
def second_church(db):
    """Create a second church for tenant-boundary tests."""
    return Church.objects.create(name="Hope Church", slug="hope")


@pytest.fixture
def make_member(db, church):
    """Factory: a user with an active membership holding ``role``."""
    def _make(email, role, target_church=None):
        target_church = target_church or church
        user = User.objects.create_user(email=email, password="testpass123", name=email.split("@")[0])
        user.active_church = target_church
        user.save()
        Membership.objects.create(user=user, church=target_church, role=role)
        return user
    return _make


@pytest.fixture
def admin_user(make_member):
    return make_member("admin@grace.test", Role.SUPER_ADMIN)


@pytest.fixture
def finance_user(make_member):
    return make_member("finance@grace.test", Role.FINANCIAL_MANAGER)


@pytest.fixture
def accountant_user(make_member):
    return make_member("accountant@grace.test", Role.DEPARTMENT_ACCOUNTANT)


@pytest.fixture
def head_user(make_member):
    return make_member("head@grace.test", Role.DEPARTMENT_HEAD)


@pytest.fixture
def chair_user(make_member):
    return make_member("chair@grace.test", Role.COMMITTEE_CHAIR)


@pytest.fixture
def member_user(make_member):
    return make_member("member@grace.test", Role.GENERAL_USER)


# =============================================================================
# Actor Context Fixtures
# =============================================================================

@pytest.fixture
def admin_actor(admin_user, church):
    return actor_for(admin_user, church)


@pytest.fixture
def finance_actor(finance_user, church):
    return actor_for(finance_user, church)


@pytest.fixture
def accountant_actor(accountant_user, church):
    return actor_for(accountant_user, church)


@pytest.fixture
def head_actor(head_user, church):
    return actor_for(head_user, church)


@pytest.fixture
def chair_actor(chair_user, church):
    return actor_for(chair_user, church)


@pytest.fixture
def member_actor(member_user, church):
    return actor_for(member_user, church)


@pytest.fixture
def chain_actors(accountant_actor, head_actor, chair_actor):
    """Step order -> actor holding that step's role."""
    return {1: accountant_actor, 2: head_actor, 3: chair_actor}


# =============================================================================
# Chart of Accounts
# =============================================================================

def make_account(church, code, name, allow_transaction=True, parent=None):
    return AccountCode.objects.create(
        church=church,
        code=code,
        name=name,
        account_type=AccountCode.TYPE_BY_LEADING_DIGIT[code[0]],
        level=derive_level(code),
        order=derive_order(code),
        parent=parent,
        allow_transaction=allow_transaction,
    )


@pytest.fixture
def chart(church):
    """Headers 1/4/5 with one postable child each, keyed by name."""
    assets = make_account(church, "1", "Assets", allow_transaction=False)
    revenue = make_account(church, "4", "Revenue", allow_transaction=False)
    expense = make_account(church, "5", "Expenses", allow_transaction=False)
    return {
        "assets": assets,
        "revenue": revenue,
        "expense": expense,
        "cash": make_account(church, "1-01", "Cash", parent=assets),
        "offering": make_account(church, "4-01", "Sunday offering", parent=revenue),
        "supplies": make_account(church, "5-01", "Office supplies", parent=expense),
    }


# =============================================================================
# Budget Fixtures
# =============================================================================

@pytest.fixture
def department(church):
    return Department.objects.create(church=church, name="Education")


def make_budget(church, department, user, items, status=Budget.Status.ACTIVE, year=None):
    """Budget whose period straddles today, with a seeded execution per item."""
    today = timezone.localdate()
    total = sum((Decimal(amount) for _code, amount in items), Decimal("0"))
    budget = Budget.objects.create(
        church=church,
        department=department,
        name="Education budget",
        year=year or today.year,
        start_date=today - timedelta(days=30),
        end_date=today + timedelta(days=30),
        total_amount=total,
        status=status,
        created_by=user,
    )
    for code, amount in items:
        item = BudgetItem.objects.create(
            budget=budget,
            name=f"Item {code}",
            code=code,
            amount=Decimal(amount),
            category=BudgetItem.Category.EDUCATION,
        )
        seed_execution(item)
    return budget


@pytest.fixture
def active_budget(church, department, admin_user):
    """ACTIVE budget: item A 1,000,000 and item B 500,000."""
    return make_budget(church, department, admin_user, [("A", "1000000"), ("B", "500000")])


@pytest.fixture
def item_a(active_budget):
    return active_budget.items.get(code="A")


@pytest.fixture
def item_b(active_budget):
    return active_budget.items.get(code="B")


# =============================================================================
# Notifications
# =============================================================================

class RecordingNotifier:
    """Collects enqueue calls instead of writing Notification rows."""

    def __init__(self):
        self.sent = []

    def enqueue(self, recipient_id, notification_type, title, message, related_id=None):
        self.sent.append({
            "recipient_id": recipient_id,
            "notification_type": notification_type,
            "title": title,
            "message": message,
            "related_id": related_id,
        })

    def enqueue_many(self, recipient_ids, notification_type, title, message, related_id=None):
        for recipient_id in dict.fromkeys(recipient_ids):
            self.enqueue(recipient_id, notification_type, title, message, related_id)

    def recipients(self, notification_type):
        return [n["recipient_id"] for n in self.sent if n["notification_type"] == notification_type]


@pytest.fixture
def notifier():
    return RecordingNotifier()
