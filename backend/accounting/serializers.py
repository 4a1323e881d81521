# accounting/serializers.py
"""
Serializers for the ledger API.

Input serializers validate shape only; business rules live in commands.
Output serializers format models and the dicts returned by read services.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import AccountCode, Transaction


MONEY = {"max_digits": 14, "decimal_places": 2}


# =============================================================================
# Account Serializers
# =============================================================================

class AccountCodeSerializer(serializers.ModelSerializer):
    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)
    is_global = serializers.BooleanField(read_only=True)

    class Meta:
        model = AccountCode
        fields = [
            "id",
            "code",
            "name",
            "english_name",
            "description",
            "account_type",
            "level",
            "order",
            "parent",
            "parent_code",
            "allow_transaction",
            "is_system",
            "is_global",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AccountCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=200)
    account_type = serializers.ChoiceField(choices=AccountCode.AccountType.choices)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    allow_transaction = serializers.BooleanField(required=False, default=True)
    english_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")


class AccountUpdateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20, required=False)
    name = serializers.CharField(max_length=200, required=False)
    account_type = serializers.ChoiceField(choices=AccountCode.AccountType.choices, required=False)
    allow_transaction = serializers.BooleanField(required=False)
    english_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide at least one field to update.")
        return attrs


class AccountFilterSerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)
    account_type = serializers.ChoiceField(choices=AccountCode.AccountType.choices, required=False)
    level = serializers.IntegerField(required=False, min_value=1, max_value=4)
    parent_id = serializers.IntegerField(required=False)
    include_inactive = serializers.BooleanField(required=False, default=False)
    church_only = serializers.BooleanField(required=False, default=False)
    postable_only = serializers.BooleanField(required=False, default=False)


class ValidateCodeQuerySerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    exclude_id = serializers.IntegerField(required=False)


class AccountTreeQuerySerializer(serializers.Serializer):
    account_type = serializers.ChoiceField(choices=AccountCode.AccountType.choices, required=False)
    max_level = serializers.IntegerField(required=False, min_value=1, max_value=4, default=4)
    church_only = serializers.BooleanField(required=False, default=False)


# =============================================================================
# Transaction Serializers
# =============================================================================

class TransactionSerializer(serializers.ModelSerializer):
    debit_account_code = serializers.CharField(source="debit_account.code", read_only=True)
    debit_account_name = serializers.CharField(source="debit_account.name", read_only=True)
    credit_account_code = serializers.CharField(source="credit_account.code", read_only=True)
    credit_account_name = serializers.CharField(source="credit_account.name", read_only=True)
    created_by_email = serializers.EmailField(source="created_by.email", read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "debit_account",
            "debit_account_code",
            "debit_account_name",
            "credit_account",
            "credit_account_code",
            "credit_account_name",
            "amount",
            "transaction_date",
            "description",
            "reference",
            "voucher_number",
            "created_by",
            "created_by_email",
            "created_at",
        ]
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    debit_account_id = serializers.IntegerField()
    credit_account_id = serializers.IntegerField()
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    transaction_date = serializers.DateField()
    description = serializers.CharField(max_length=500)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    voucher_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["debit_account_id"] == attrs["credit_account_id"]:
            raise serializers.ValidationError("Debit and credit accounts must differ.")
        return attrs


class DateRangeSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must not be after end_date.")
        return attrs


class TransactionFilterSerializer(DateRangeSerializer):
    account_id = serializers.IntegerField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class TrialBalanceQuerySerializer(DateRangeSerializer):
    level = serializers.IntegerField(required=False, min_value=1, max_value=4)


class GeneralLedgerQuerySerializer(DateRangeSerializer):
    account_ids = serializers.ListField(child=serializers.IntegerField(), required=False)


# =============================================================================
# Report Serializers (read-service dicts)
# =============================================================================

class LedgerLineSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    transaction_date = serializers.DateField()
    description = serializers.CharField()
    reference = serializers.CharField()
    voucher_number = serializers.CharField()
    debit_amount = serializers.DecimalField(**MONEY)
    credit_amount = serializers.DecimalField(**MONEY)
    counterpart_code = serializers.CharField()
    counterpart_name = serializers.CharField()
    balance = serializers.DecimalField(**MONEY)


class AccountLedgerSerializer(serializers.Serializer):
    account = serializers.DictField()
    start_date = serializers.DateField(allow_null=True)
    end_date = serializers.DateField(allow_null=True)
    beginning_balance = serializers.DecimalField(**MONEY)
    ending_balance = serializers.DecimalField(**MONEY)
    transactions = LedgerLineSerializer(many=True)


class TrialBalanceRowSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    code = serializers.CharField()
    name = serializers.CharField()
    account_type = serializers.CharField()
    level = serializers.IntegerField()
    debit = serializers.DecimalField(**MONEY)
    credit = serializers.DecimalField(**MONEY)
    balance = serializers.DecimalField(**MONEY)


class TrialBalanceSerializer(serializers.Serializer):
    start_date = serializers.DateField(allow_null=True)
    end_date = serializers.DateField(allow_null=True)
    level = serializers.IntegerField(allow_null=True)
    accounts = TrialBalanceRowSerializer(many=True)
    summary = serializers.DictField(child=serializers.DecimalField(**MONEY))
    total_debit = serializers.DecimalField(**MONEY)
    total_credit = serializers.DecimalField(**MONEY)
    is_balanced = serializers.BooleanField()
