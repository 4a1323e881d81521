# common/lifecycle.py
"""
One lifecycle status for everything that is soft-deleted.

AccountCode, Department and Membership all carry ``status`` with these
values, and their managers expose ``.live()`` so callers never filter on
an ad-hoc boolean.
"""

from django.db import models


class LifecycleStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"


class LifecycleQuerySet(models.QuerySet):
    def live(self):
        return self.filter(status=LifecycleStatus.ACTIVE)

    def retired(self):
        return self.filter(status=LifecycleStatus.INACTIVE)


class LifecycleMixin(models.Model):
    status = models.CharField(
        max_length=10,
        choices=LifecycleStatus.choices,
        default=LifecycleStatus.ACTIVE,
        db_index=True,
    )

    objects = LifecycleQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_live(self) -> bool:
        return self.status == LifecycleStatus.ACTIVE

    def retire(self, save: bool = True):
        self.status = LifecycleStatus.INACTIVE
        if save:
            self.save(update_fields=["status"])
