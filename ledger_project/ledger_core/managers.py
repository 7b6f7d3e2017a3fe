from django.db import models


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):
        # every service lookup goes through this filter, so a pk from
        # another company behaves exactly like a missing row
        return self.filter(company=company)

    def active(self, company):
        return self.filter(company=company, is_active=True)


class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    """Default manager of every company-owned model.

    Account.objects.for_company(company).get(pk=pk)
    raises Account.DoesNotExist for other tenants' rows.
    """


class PostedLineQuerySet(TenantQuerySet):
    def posted(self):
        # Draft and Voided journals never count toward balances or reports
        return self.filter(journal__status="posted")

    def within(self, start=None, end=None):
        qs = self
        if start:
            qs = qs.filter(journal__transaction_date__gte=start)
        if end:
            qs = qs.filter(journal__transaction_date__lte=end)
        return qs


class JournalLineManager(models.Manager.from_queryset(PostedLineQuerySet)):
    pass
