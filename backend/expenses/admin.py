from django.contrib import admin

from .models import ApprovalStep, ExpenseReport


class ApprovalStepInline(admin.TabularInline):
    model = ApprovalStep
    extra = 0
    can_delete = False
    fields = ("step_order", "role", "assigned_user", "status", "approver", "processed_at")
    readonly_fields = fields


@admin.register(ExpenseReport)
class ExpenseReportAdmin(admin.ModelAdmin):
    list_display = ("title", "church", "requester", "amount", "budget_item", "status", "workflow_status", "current_step")
    list_filter = ("status", "workflow_status", "category", "church")
    search_fields = ("title", "requester__email")
    inlines = [ApprovalStepInline]
    # State changes go through expenses.commands so execution figures stay current.
    readonly_fields = ("status", "workflow_status", "current_step", "amount", "budget_item")
