import decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AccountCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")], db_index=True, default="ACTIVE", max_length=10)),
                ("code", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=200)),
                ("english_name", models.CharField(blank=True, default="", max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("account_type", models.CharField(choices=[("ASSET", "Asset"), ("LIABILITY", "Liability"), ("EQUITY", "Equity"), ("REVENUE", "Revenue"), ("EXPENSE", "Expense")], max_length=10)),
                ("level", models.PositiveSmallIntegerField()),
                ("order", models.PositiveIntegerField(db_index=True)),
                ("allow_transaction", models.BooleanField(default=True)),
                ("is_system", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("church", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="account_codes", to="accounts.church")),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="accounting.accountcode")),
            ],
            options={
                "ordering": ["order", "code"],
                "indexes": [models.Index(fields=["church", "account_type", "level"], name="account_church_type_level_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("church", "code"), name="uniq_account_code_per_church"),
                    models.UniqueConstraint(condition=models.Q(("church__isnull", True)), fields=("code",), name="uniq_global_account_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.01"))])),
                ("transaction_date", models.DateField(db_index=True)),
                ("description", models.CharField(max_length=500)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("voucher_number", models.CharField(blank=True, default="", max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("church", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="accounts.church")),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="posted_transactions", to=settings.AUTH_USER_MODEL)),
                ("credit_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="credit_transactions", to="accounting.accountcode")),
                ("debit_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="debit_transactions", to="accounting.accountcode")),
            ],
            options={
                "ordering": ["transaction_date", "created_at", "id"],
                "indexes": [models.Index(fields=["church", "transaction_date"], name="txn_church_date_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("debit_account", models.F("credit_account")), _negated=True), name="transaction_accounts_differ"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="transaction_amount_positive"),
                ],
            },
        ),
    ]
