from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _

from ledger_core.models import Company, EntityMembership, User

from .actions import post_pending_documents
from .forms import UserAdminChangeForm, UserAdminCreationForm
from .mixins import TenantAdminMixin

MANAGER_ROLES = ("owner", "admin")


def _member_company_ids(user, roles=None):
    memberships = user.memberships.filter(is_active=True)
    if roles:
        memberships = memberships.filter(role__in=roles)
    return set(memberships.values_list("company_id", flat=True))


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    """Tenants. The slug also feeds the invoice number prefix."""

    list_display = ("id", "name", "slug", "document_prefix", "default_currency", "created_at")
    search_fields = ("name", "slug")
    ordering = ("name",)
    # retry GL posting of documents whose automatic posting failed
    actions = [post_pending_documents]

    def get_queryset(self, request):
        qs = super().get_queryset(request).select_related("default_currency", "owner")
        if request.user.is_superuser:
            return qs
        return qs.filter(pk__in=_member_company_ids(request.user))


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    add_form = UserAdminCreationForm
    form = UserAdminChangeForm
    model = User

    list_display = ("username", "email", "get_full_name", "is_staff", "default_company")
    list_filter = ("is_staff", "is_superuser", "is_active")
    search_fields = ("username", "email", "first_name", "last_name")
    ordering = ("username",)

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (_("Personal info"), {"fields": ("first_name", "last_name", "email", "phone")}),
        (_("Ledger"), {"fields": ("default_company",)}),
        (
            _("Permissions"),
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "email", "default_company", "password1", "password2"),
            },
        ),
    )

    # users are visible to members of a shared company only
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        return qs.filter(
            memberships__company_id__in=_member_company_ids(request.user)
        ).distinct()


@admin.register(EntityMembership)
class EntityMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "company")
    search_fields = ("user__username", "user__email", "company__name")
    readonly_fields = ("created_at",)
    ordering = ("company__name", "user__username")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "user")

    # owners and admins manage the memberships of their own companies
    def has_change_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        managed = _member_company_ids(request.user, MANAGER_ROLES)
        if obj is None:
            return bool(managed)
        return obj.company_id in managed

    def has_delete_permission(self, request, obj=None):
        return self.has_change_permission(request, obj)

    def has_add_permission(self, request):
        if request.user.is_superuser:
            return True
        return bool(_member_company_ids(request.user, MANAGER_ROLES))
