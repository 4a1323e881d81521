# budgets/serializers.py
"""Serializers for the budgets API."""

from decimal import Decimal

from rest_framework import serializers

from .models import Budget, BudgetChange, BudgetExecution, BudgetItem

MONEY = {"max_digits": 14, "decimal_places": 2}


class BudgetExecutionSerializer(serializers.ModelSerializer):
    class Meta:
        model = BudgetExecution
        fields = [
            "total_budget",
            "used_amount",
            "pending_amount",
            "remaining_amount",
            "execution_rate",
            "updated_at",
        ]
        read_only_fields = fields


class BudgetItemSerializer(serializers.ModelSerializer):
    execution = BudgetExecutionSerializer(read_only=True)

    class Meta:
        model = BudgetItem
        fields = ["id", "name", "code", "amount", "category", "description", "execution"]
        read_only_fields = fields


class BudgetSerializer(serializers.ModelSerializer):
    department_name = serializers.CharField(source="department.name", read_only=True)
    items = BudgetItemSerializer(many=True, read_only=True)

    class Meta:
        model = Budget
        fields = [
            "id",
            "department",
            "department_name",
            "name",
            "description",
            "year",
            "quarter",
            "month",
            "start_date",
            "end_date",
            "total_amount",
            "status",
            "created_by",
            "approved_by",
            "approved_at",
            "decision_reason",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BudgetChangeSerializer(serializers.ModelSerializer):
    class Meta:
        model = BudgetChange
        fields = [
            "id",
            "budget",
            "change_type",
            "amount",
            "from_item",
            "to_item",
            "reason",
            "status",
            "requested_by",
            "approved_by",
            "approved_at",
            "decision_reason",
            "created_at",
        ]
        read_only_fields = fields


class ItemExecutionSerializer(serializers.ModelSerializer):
    """Execution row with its item and budget, for overviews."""
    budget_item_id = serializers.IntegerField(source="budget_item.id", read_only=True)
    budget_item_name = serializers.CharField(source="budget_item.name", read_only=True)
    budget_item_code = serializers.CharField(source="budget_item.code", read_only=True)
    budget_id = serializers.IntegerField(source="budget_item.budget.id", read_only=True)
    budget_name = serializers.CharField(source="budget_item.budget.name", read_only=True)

    class Meta:
        model = BudgetExecution
        fields = [
            "budget_item_id",
            "budget_item_name",
            "budget_item_code",
            "budget_id",
            "budget_name",
            "total_budget",
            "used_amount",
            "pending_amount",
            "remaining_amount",
            "execution_rate",
        ]
        read_only_fields = fields


class AvailableItemSerializer(BudgetItemSerializer):
    budget_id = serializers.IntegerField(source="budget.id", read_only=True)
    budget_name = serializers.CharField(source="budget.name", read_only=True)
    department_id = serializers.IntegerField(source="budget.department.id", read_only=True)
    department_name = serializers.CharField(source="budget.department.name", read_only=True)

    class Meta(BudgetItemSerializer.Meta):
        fields = BudgetItemSerializer.Meta.fields + ["budget_id", "budget_name", "department_id", "department_name"]
        read_only_fields = fields


# =============================================================================
# Input
# =============================================================================

class BudgetItemInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    code = serializers.CharField(max_length=50)
    amount = serializers.DecimalField(min_value=Decimal("0"), **MONEY)
    category = serializers.ChoiceField(choices=BudgetItem.Category.choices)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class BudgetCreateSerializer(serializers.Serializer):
    department_id = serializers.IntegerField()
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    year = serializers.IntegerField(min_value=2020, max_value=2050)
    quarter = serializers.IntegerField(min_value=1, max_value=4, required=False, allow_null=True, default=None)
    month = serializers.IntegerField(min_value=1, max_value=12, required=False, allow_null=True, default=None)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    total_amount = serializers.DecimalField(min_value=Decimal("0"), **MONEY)
    items = BudgetItemInputSerializer(many=True, allow_empty=False)

    def validate(self, attrs):
        if attrs["start_date"] >= attrs["end_date"]:
            raise serializers.ValidationError("start_date must be before end_date.")
        return attrs


class BudgetUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    year = serializers.IntegerField(min_value=2020, max_value=2050, required=False)
    quarter = serializers.IntegerField(min_value=1, max_value=4, required=False, allow_null=True)
    month = serializers.IntegerField(min_value=1, max_value=12, required=False, allow_null=True)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    total_amount = serializers.DecimalField(min_value=Decimal("0"), required=False, **MONEY)
    items = BudgetItemInputSerializer(many=True, allow_empty=False, required=False)


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=["APPROVED", "REJECTED"])
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class BudgetChangeRequestSerializer(serializers.Serializer):
    change_type = serializers.ChoiceField(choices=BudgetChange.ChangeType.choices)
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    reason = serializers.CharField()
    from_item_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    to_item_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class BudgetFilterSerializer(serializers.Serializer):
    department_id = serializers.IntegerField(required=False)
    year = serializers.IntegerField(required=False)
    quarter = serializers.IntegerField(required=False, min_value=1, max_value=4)
    status = serializers.ChoiceField(choices=Budget.Status.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class CheckBalanceQuerySerializer(serializers.Serializer):
    amount = serializers.DecimalField(min_value=Decimal("0"), **MONEY)


class DepartmentSummaryQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField()
    quarter = serializers.IntegerField(required=False, min_value=1, max_value=4)


class AvailableItemsQuerySerializer(serializers.Serializer):
    department_id = serializers.IntegerField(required=False)
    category = serializers.ChoiceField(choices=BudgetItem.Category.choices, required=False)
    min_amount = serializers.DecimalField(required=False, default=Decimal("0"), **MONEY)


class ExecutionQuerySerializer(serializers.Serializer):
    department_id = serializers.IntegerField(required=False)
    year = serializers.IntegerField(required=False)


# =============================================================================
# Read-service output
# =============================================================================

class CheckBalanceSerializer(serializers.Serializer):
    budget_item_id = serializers.IntegerField()
    budget_item_name = serializers.CharField()
    budget_name = serializers.CharField()
    budget_status = serializers.CharField()
    total_budget = serializers.DecimalField(**MONEY)
    used_amount = serializers.DecimalField(**MONEY)
    pending_amount = serializers.DecimalField(**MONEY)
    remaining_amount = serializers.DecimalField(**MONEY)
    request_amount = serializers.DecimalField(**MONEY)
    can_approve = serializers.BooleanField()
    would_exceed = serializers.BooleanField()
    exceed_amount = serializers.DecimalField(**MONEY)
    execution_rate = serializers.DecimalField(max_digits=9, decimal_places=2)
    projected_rate = serializers.DecimalField(max_digits=9, decimal_places=2)


class DepartmentSummarySerializer(serializers.Serializer):
    department = serializers.DictField()
    budgets = BudgetSerializer(many=True)
    summary = serializers.DictField(child=serializers.DecimalField(max_digits=16, decimal_places=2))
