# expenses/serializers.py
"""Serializers for the expenses API."""

from decimal import Decimal

from rest_framework import serializers

from .models import ApprovalStep, ExpenseReport

MONEY = {"max_digits": 14, "decimal_places": 2}


class ApprovalStepSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApprovalStep
        fields = [
            "id",
            "step_order",
            "role",
            "label",
            "assigned_user",
            "status",
            "approver",
            "comment",
            "processed_at",
        ]
        read_only_fields = fields


class ExpenseReportSerializer(serializers.ModelSerializer):
    requester_email = serializers.EmailField(source="requester.email", read_only=True)
    budget_item_name = serializers.CharField(source="budget_item.name", read_only=True, default=None)
    approval_steps = ApprovalStepSerializer(many=True, read_only=True)

    class Meta:
        model = ExpenseReport
        fields = [
            "id",
            "title",
            "description",
            "amount",
            "category",
            "receipt_url",
            "budget_item",
            "budget_item_name",
            "requester",
            "requester_email",
            "status",
            "workflow_status",
            "current_step",
            "total_steps",
            "request_date",
            "approved_date",
            "rejected_date",
            "rejection_reason",
            "approval_steps",
            "updated_at",
        ]
        read_only_fields = fields


# =============================================================================
# Input
# =============================================================================

class ExpenseCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    category = serializers.ChoiceField(choices=ExpenseReport.Category.choices)
    budget_item_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    receipt_url = serializers.URLField(required=False, allow_blank=True, default="")
    approver_assignments = serializers.DictField(
        child=serializers.IntegerField(allow_null=True),
        required=False,
        default=dict,
    )


class ExpenseUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False)
    amount = serializers.DecimalField(min_value=Decimal("0.01"), required=False, **MONEY)
    category = serializers.ChoiceField(choices=ExpenseReport.Category.choices, required=False)
    budget_item_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True)
    receipt_url = serializers.URLField(required=False, allow_blank=True)


class WorkflowStepSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["APPROVE", "REJECT"])
    comment = serializers.CharField(required=False, allow_blank=True, default="")
    step_order = serializers.IntegerField(required=False, allow_null=True, default=None, min_value=1)


class ExpenseDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=["APPROVED", "REJECTED", "PAID"])
    rejection_reason = serializers.CharField(required=False, allow_blank=True, default="")


class ExpenseFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ExpenseReport.Status.choices, required=False)
    workflow_status = serializers.ChoiceField(choices=ExpenseReport.WorkflowStatus.choices, required=False)
    category = serializers.ChoiceField(choices=ExpenseReport.Category.choices, required=False)
    budget_item_id = serializers.IntegerField(required=False)
    requester_id = serializers.IntegerField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class ValidateBudgetQuerySerializer(serializers.Serializer):
    budget_item_id = serializers.IntegerField()
    amount = serializers.DecimalField(min_value=Decimal("0"), **MONEY)
    exclude_expense_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class BudgetValidationSerializer(serializers.Serializer):
    is_valid = serializers.BooleanField()
    budget_item_id = serializers.IntegerField()
    request_amount = serializers.DecimalField(**MONEY)
    total_budget = serializers.DecimalField(**MONEY)
    used_amount = serializers.DecimalField(**MONEY)
    pending_amount = serializers.DecimalField(**MONEY)
    remaining_amount = serializers.DecimalField(**MONEY)
    exceed_amount = serializers.DecimalField(**MONEY)
    error = serializers.CharField(allow_blank=True)
