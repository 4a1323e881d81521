from django.contrib import admin

from .models import Budget, BudgetChange, BudgetExecution, BudgetItem


class BudgetItemInline(admin.TabularInline):
    model = BudgetItem
    extra = 0
    can_delete = False
    fields = ("code", "name", "category", "amount")
    readonly_fields = fields


@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ("name", "church", "department", "year", "quarter", "month", "total_amount", "status")
    list_filter = ("status", "year", "church")
    search_fields = ("name", "department__name")
    inlines = [BudgetItemInline]
    readonly_fields = ("status", "total_amount", "approved_by", "approved_at")


@admin.register(BudgetExecution)
class BudgetExecutionAdmin(admin.ModelAdmin):
    list_display = ("budget_item", "total_budget", "used_amount", "pending_amount", "remaining_amount", "execution_rate")
    readonly_fields = list_display

    def has_add_permission(self, request):
        return False


@admin.register(BudgetChange)
class BudgetChangeAdmin(admin.ModelAdmin):
    list_display = ("budget", "change_type", "amount", "from_item", "to_item", "status", "created_at")
    list_filter = ("change_type", "status")
