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
            name="Budget",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("year", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(2020), django.core.validators.MaxValueValidator(2050)])),
                ("quarter", models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(4)])),
                ("month", models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("SUBMITTED", "Submitted"), ("ACTIVE", "Active"), ("REJECTED", "Rejected")], db_index=True, default="DRAFT", max_length=10)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("decision_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="approved_budgets", to=settings.AUTH_USER_MODEL)),
                ("church", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="budgets", to="accounts.church")),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="created_budgets", to=settings.AUTH_USER_MODEL)),
                ("department", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="budgets", to="accounts.department")),
            ],
            options={
                "ordering": ["-year", "-created_at"],
                "indexes": [models.Index(fields=["church", "department", "year"], name="budget_church_dept_year_idx")],
            },
        ),
        migrations.CreateModel(
            name="BudgetItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("code", models.CharField(max_length=50)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ("category", models.CharField(choices=[("PERSONNEL", "Personnel"), ("OPERATIONS", "Operations"), ("MINISTRY", "Ministry"), ("MISSION", "Mission"), ("EDUCATION", "Education"), ("WELFARE", "Welfare"), ("FACILITIES", "Facilities"), ("MANAGEMENT", "Management"), ("EVENT", "Event"), ("OTHER", "Other")], max_length=12)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("budget", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="budgets.budget")),
            ],
            options={
                "ordering": ["code", "id"],
            },
        ),
        migrations.CreateModel(
            name="BudgetExecution",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("total_budget", models.DecimalField(decimal_places=2, max_digits=14)),
                ("used_amount", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("pending_amount", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("remaining_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("execution_rate", models.DecimalField(decimal_places=2, default=0, max_digits=7)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("budget_item", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="execution", to="budgets.budgetitem")),
            ],
        ),
        migrations.CreateModel(
            name="BudgetChange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("change_type", models.CharField(choices=[("TRANSFER", "Transfer"), ("INCREASE", "Increase"), ("DECREASE", "Decrease")], max_length=10)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ("reason", models.TextField()),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")], db_index=True, default="PENDING", max_length=10)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("decision_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="decided_budget_changes", to=settings.AUTH_USER_MODEL)),
                ("budget", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="changes", to="budgets.budget")),
                ("from_item", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="outgoing_changes", to="budgets.budgetitem")),
                ("requested_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="requested_budget_changes", to=settings.AUTH_USER_MODEL)),
                ("to_item", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="incoming_changes", to="budgets.budgetitem")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
