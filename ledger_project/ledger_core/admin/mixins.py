class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company (set by CurrentCompanyMiddleware)
    or falls back to request.user.default_company.
    """

    def _get_request_company(self, request):
        # prefer request.company (middleware)
        company = getattr(request, "company", None)
        if company is None:
            user = getattr(request, "user", None)
            company = getattr(user, "default_company", None)
        return company

    def get_queryset(self, request):
        qs = super().get_queryset(request)

        # superusers see every tenant
        if request.user.is_superuser:
            return qs
        company = self._get_request_company(request)
        if company is None:
            return qs.none()
        return qs.filter(company=company)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the current company:
        company field, account field, vendor / customer field.
        """
        company = self._get_request_company(request)

        if db_field.name == "company" and not request.user.is_superuser:
            model = db_field.related_model
            kwargs["queryset"] = (
                model.objects.filter(pk=company.pk) if company else model.objects.none()
            )
            return super().formfield_for_foreignkey(db_field, request, **kwargs)

        # related models that carry a company FK are scoped to it
        rel_model = getattr(db_field, "related_model", None)
        has_company = rel_model is not None and any(
            f.name == "company" for f in rel_model._meta.get_fields()
        )
        if has_company and not request.user.is_superuser:
            if company is not None:
                kwargs["queryset"] = rel_model.objects.filter(company=company)
            else:
                kwargs["queryset"] = rel_model.objects.none()

        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # objects are always owned by the current company (unless superuser)
        if not request.user.is_superuser:
            company = self._get_request_company(request)
            if company is not None:
                obj.company = company
        super().save_model(request, obj, form, change)
