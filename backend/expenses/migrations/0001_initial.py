import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("budgets", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ExpenseReport",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ("category", models.CharField(choices=[("OFFICE", "Office supplies"), ("FACILITY", "Facility"), ("EDUCATION", "Education"), ("MISSION", "Mission"), ("WELFARE", "Welfare"), ("EVENT", "Event"), ("OTHER", "Other")], default="OTHER", max_length=10)),
                ("receipt_url", models.URLField(blank=True, default="")),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected"), ("PAID", "Paid")], db_index=True, default="PENDING", max_length=10)),
                ("workflow_status", models.CharField(choices=[("DRAFT", "Draft"), ("IN_PROGRESS", "In progress"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")], db_index=True, default="DRAFT", max_length=12)),
                ("current_step", models.PositiveSmallIntegerField(default=0)),
                ("total_steps", models.PositiveSmallIntegerField(default=3)),
                ("request_date", models.DateTimeField(auto_now_add=True)),
                ("approved_date", models.DateTimeField(blank=True, null=True)),
                ("rejected_date", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("budget_item", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="expense_reports", to="budgets.budgetitem")),
                ("church", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="expense_reports", to="accounts.church")),
                ("requester", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="expense_reports", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-request_date", "-id"],
                "indexes": [models.Index(fields=["budget_item", "status"], name="expense_item_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="ApprovalStep",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("step_order", models.PositiveSmallIntegerField()),
                ("role", models.CharField(max_length=32)),
                ("label", models.CharField(blank=True, default="", max_length=100)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")], default="PENDING", max_length=10)),
                ("comment", models.TextField(blank=True, default="")),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("approver", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="processed_approval_steps", to=settings.AUTH_USER_MODEL)),
                ("assigned_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_approval_steps", to=settings.AUTH_USER_MODEL)),
                ("expense_report", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="approval_steps", to="expenses.expensereport")),
            ],
            options={
                "ordering": ["expense_report", "step_order"],
                "constraints": [models.UniqueConstraint(fields=("expense_report", "step_order"), name="uniq_step_per_report")],
            },
        ),
    ]
