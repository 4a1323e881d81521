import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notification_type", models.CharField(choices=[("EXPENSE_APPROVAL_REQUEST", "Expense approval request"), ("EXPENSE_APPROVED", "Expense approved"), ("EXPENSE_REJECTED", "Expense rejected"), ("EXPENSE_PAID", "Expense paid")], max_length=40)),
                ("title", models.CharField(max_length=200)),
                ("message", models.TextField()),
                ("related_id", models.CharField(blank=True, default="", max_length=64)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["recipient", "is_read"], name="notification_recipient_idx")],
            },
        ),
    ]
