from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from accounts.permissions import CompanyRole, GlobalRole, effective_permission


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
        extra_fields.setdefault("global_role", GlobalRole.GLOBAL_ADMINISTRATOR)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    username = None
    email = models.EmailField("email address", unique=True)
    name = models.CharField(max_length=150)
    global_role = models.CharField(
        max_length=30,
        choices=GlobalRole.choices,
        default=GlobalRole.USER,
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    def __str__(self):
        return self.email


class Company(models.Model):
    """
    A tenant. Every account and journal entry belongs to exactly one company.
    """

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    currency = models.CharField(max_length=3, default="USD")
    decimal_places = models.PositiveSmallIntegerField(
        default=2,
        validators=[MaxValueValidator(2)],
        help_text="Precision journal amounts are rounded to (ledger columns hold 2 places)",
    )
    journal_prefix = models.CharField(max_length=10, default="JE")
    reject_future_dated = models.BooleanField(
        null=True,
        blank=True,
        help_text="Reject journal entries dated after today; empty uses LEDGER_REJECT_FUTURE_DATED",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Company")
        verbose_name_plural = _("Companies")
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def rejects_future_dated(self) -> bool:
        if self.reject_future_dated is None:
            return getattr(settings, "LEDGER_REJECT_FUTURE_DATED", True)
        return self.reject_future_dated


class CompanyMembership(models.Model):
    """A user's role inside one company."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    role = models.CharField(
        max_length=20,
        choices=CompanyRole.choices,
        default=CompanyRole.ASSISTANT,
    )
    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"],
                name="uniq_membership_user_company",
            )
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def has_permission(self, permission) -> bool:
        if not self.is_active:
            return False
        return effective_permission(self.user.global_role, self.role, permission)
