# accounting/tests/test_journal_workflow.py
"""
Integration tests for the ledger API.

These tests drive the full path a bookkeeper takes: build a small chart
of accounts, post offerings and spending, then read the account ledger and
the trial balance back.

Tests verify the API responses rather than direct database queries
to avoid transaction isolation issues between the API client and
test database connections.
"""
from django.contrib.auth import get_user_model
from django.test import TransactionTestCase
from rest_framework.test import APIClient

from accounts.models import Church, Membership


class LedgerApiTestCase(TransactionTestCase):

    def setUp(self):
        self.client = APIClient()
        User = get_user_model()

        self.user = User.objects.create_user(
            email="treasurer@example.com",
            password="pass12345",
            name="Treasurer",
        )
        self.church = Church.objects.create(name="Grace Church", slug="grace")
        Membership.objects.create(
            user=self.user,
            church=self.church,
            role=Membership.Role.FINANCIAL_MANAGER,
        )
        self.user.active_church = self.church
        self.user.save(update_fields=["active_church"])
        self.client.force_authenticate(user=self.user)

    def create_account(self, code, name, account_type, parent_id=None, allow_transaction=True):
        response = self.client.post(
            "/api/accounting/accounts/",
            {
                "code": code,
                "name": name,
                "account_type": account_type,
                "parent_id": parent_id,
                "allow_transaction": allow_transaction,
            },
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        return response.data

    def build_chart(self):
        assets = self.create_account("1", "Assets", "ASSET", allow_transaction=False)
        revenue = self.create_account("4", "Revenue", "REVENUE", allow_transaction=False)
        expense = self.create_account("5", "Expenses", "EXPENSE", allow_transaction=False)
        self.cash = self.create_account("1-01", "Cash", "ASSET", parent_id=assets["id"])
        self.offering = self.create_account("4-01", "Sunday offering", "REVENUE", parent_id=revenue["id"])
        self.supplies = self.create_account("5-01", "Supplies", "EXPENSE", parent_id=expense["id"])

    def post_transaction(self, debit, credit, amount, transaction_date, description):
        return self.client.post(
            "/api/accounting/transactions/",
            {
                "debit_account_id": debit["id"],
                "credit_account_id": credit["id"],
                "amount": amount,
                "transaction_date": transaction_date,
                "description": description,
            },
            format="json",
        )


class TestChartOfAccountsApi(LedgerApiTestCase):

    def test_created_account_reports_level_and_order(self):
        self.build_chart()

        self.assertEqual(self.cash["level"], 2)
        self.assertEqual(self.cash["order"], 1010000)
        self.assertEqual(self.cash["parent_code"], "1")

    def test_type_mismatch_is_rejected(self):
        response = self.client.post(
            "/api/accounting/accounts/",
            {"code": "5", "name": "Wrong", "account_type": "ASSET"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "business_rule_violation")

    def test_duplicate_code_conflicts(self):
        self.create_account("1", "Assets", "ASSET", allow_transaction=False)

        response = self.client.post(
            "/api/accounting/accounts/",
            {"code": "1", "name": "Again", "account_type": "ASSET"},
            format="json",
        )

        self.assertEqual(response.status_code, 409)

    def test_validate_code_endpoint(self):
        self.create_account("1", "Assets", "ASSET", allow_transaction=False)

        taken = self.client.get("/api/accounting/accounts/validate-code/", {"code": "1"})
        self.assertEqual(taken.status_code, 200)
        self.assertFalse(taken.data["is_valid"])

        free = self.client.get("/api/accounting/accounts/validate-code/", {"code": "2"})
        self.assertTrue(free.data["is_valid"])

    def test_general_user_cannot_create_accounts(self):
        Membership.objects.filter(user=self.user).update(role=Membership.Role.GENERAL_USER)

        response = self.client.post(
            "/api/accounting/accounts/",
            {"code": "1", "name": "Assets", "account_type": "ASSET"},
            format="json",
        )

        self.assertEqual(response.status_code, 403)


class TestPostingFlow(LedgerApiTestCase):
    """
    Post an offering and a purchase, then:
    - the cash ledger carries a running balance
    - the trial balance comes back balanced
    """

    def setUp(self):
        super().setUp()
        self.build_chart()

    def test_post_and_read_back(self):
        offering = self.post_transaction(self.cash, self.offering, "100000", "2025-03-02", "Sunday offering")
        self.assertEqual(offering.status_code, 201, offering.data)
        self.assertEqual(offering.data["debit_account_code"], "1-01")
        self.assertEqual(offering.data["credit_account_code"], "4-01")

        purchase = self.post_transaction(self.supplies, self.cash, "30000", "2025-03-05", "Paper and toner")
        self.assertEqual(purchase.status_code, 201, purchase.data)

        ledger = self.client.get(f"/api/accounting/accounts/{self.cash['id']}/ledger/")
        self.assertEqual(ledger.status_code, 200)
        self.assertEqual(ledger.data["beginning_balance"], "0.00")
        self.assertEqual(ledger.data["ending_balance"], "70000.00")
        self.assertEqual(
            [line["balance"] for line in ledger.data["transactions"]],
            ["100000.00", "70000.00"],
        )

        report = self.client.get("/api/accounting/trial-balance/")
        self.assertEqual(report.status_code, 200)
        self.assertTrue(report.data["is_balanced"])
        self.assertEqual(report.data["total_debit"], report.data["total_credit"])
        self.assertEqual(report.data["total_debit"], "130000.00")

    def test_header_accounts_refuse_postings(self):
        assets = self.client.get("/api/accounting/accounts/", {"search": "Assets"}).data[0]

        response = self.post_transaction(assets, self.offering, "1000", "2025-03-02", "Misposted")

        self.assertEqual(response.status_code, 400)

    def test_same_account_on_both_sides_is_invalid(self):
        response = self.post_transaction(self.cash, self.cash, "1000", "2025-03-02", "Loop")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "validation_error")

    def test_zero_amount_is_rejected_by_the_serializer(self):
        response = self.post_transaction(self.cash, self.offering, "0", "2025-03-02", "Nothing")

        self.assertEqual(response.status_code, 400)

    def test_deleting_a_transaction_removes_it_from_reports(self):
        posted = self.post_transaction(self.cash, self.offering, "5000", "2025-03-02", "Offering").data

        response = self.client.delete(f"/api/accounting/transactions/{posted['id']}/")
        self.assertEqual(response.status_code, 204)

        report = self.client.get("/api/accounting/trial-balance/")
        self.assertEqual(report.data["total_debit"], "0.00")
        self.assertEqual(report.data["accounts"], [])
