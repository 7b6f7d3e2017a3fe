from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.text import slugify

from ..managers import TenantManager


# ---------- Tenant / Company ----------
class Company(models.Model):
    """Tenant. Every ledger row carries a company FK."""

    name = models.CharField(max_length=200)
    # also feeds the invoice number prefix (first three letters)
    slug = models.SlugField(max_length=80, unique=True, blank=True)
    default_currency = models.ForeignKey(
        "Currency",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="companies",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="owned_companies",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            base = slugify(self.name) or "company"
            slug, n = base, 1
            # keep slugs unique without asking the caller for one
            while Company.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                n += 1
                slug = f"{base}-{n}"
            self.slug = slug
        super().save(*args, **kwargs)

    @property
    def document_prefix(self):
        """Prefix of invoice numbers, e.g. "ACM" for slug "acme"."""
        letters = "".join(ch for ch in self.slug if ch.isalnum())
        return (letters[:3] or "INV").upper()


# ---------- Custom User ----------
class User(AbstractUser):
    default_company = models.ForeignKey(
        "Company",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="default_users",
    )
    phone = models.CharField(max_length=32, blank=True)

    class Meta:
        indexes = [models.Index(fields=["default_company"])]

    def __str__(self):
        return self.get_full_name() or self.username


# ---------- EntityMembership ----------
class EntityMembership(models.Model):
    """User <-> Company link with a role."""

    ROLE_CHOICES = [
        ("owner", "Owner"),
        ("admin", "Admin"),
        # posts journals, approves bills
        ("accountant", "Accountant"),
        ("viewer", "Viewer"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="memberships"
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="viewer")
    # suspend access without deleting the row
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]
        indexes = [models.Index(fields=["company", "user"])]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def clean(self):
        # a user's default company must be one of their memberships;
        # this row counts even before it is saved
        default_company_id = getattr(self.user, "default_company_id", None)
        if not default_company_id or default_company_id == self.company_id:
            return
        others = self.user.memberships.exclude(pk=self.pk)
        if not others.filter(company_id=default_company_id).exists():
            raise ValidationError(
                f"Default company {self.user.default_company} must be a user's membership."
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
