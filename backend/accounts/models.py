from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _

from common.lifecycle import LifecycleMixin


class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("The given email must be set")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    username = None
    email = models.EmailField("email address", unique=True)
    name = models.CharField(max_length=150)
    active_church = models.ForeignKey(
        "accounts.Church",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    def __str__(self):
        return self.email


class Church(models.Model):
    """The tenant. Every ledger row belongs to exactly one church (or is global)."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=60, unique=True)
    currency = models.CharField(max_length=3, default="KRW")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Church")
        verbose_name_plural = _("Churches")

    def __str__(self):
        return self.name


class Department(LifecycleMixin):
    church = models.ForeignKey(Church, on_delete=models.CASCADE, related_name="departments")
    name = models.CharField(max_length=150)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    budget_manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="managed_departments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["church", "name"], name="uniq_department_name_per_church"),
        ]

    def __str__(self):
        return self.name


class Membership(LifecycleMixin):
    class Role(models.TextChoices):
        SUPER_ADMIN = "SUPER_ADMIN", "Super admin"
        FINANCIAL_MANAGER = "FINANCIAL_MANAGER", "Financial manager"
        MINISTER = "MINISTER", "Minister"
        COMMITTEE_CHAIR = "COMMITTEE_CHAIR", "Committee chair"
        DEPARTMENT_HEAD = "DEPARTMENT_HEAD", "Department head"
        DEPARTMENT_ACCOUNTANT = "DEPARTMENT_ACCOUNTANT", "Department accountant"
        GENERAL_USER = "GENERAL_USER", "General user"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="memberships")
    church = models.ForeignKey(Church, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=32, choices=Role.choices, default=Role.GENERAL_USER)
    department = models.ForeignKey(
        Department,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="members",
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "church"], name="uniq_membership_user_church"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.church} ({self.role})"
