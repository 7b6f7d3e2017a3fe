from decimal import Decimal

from django import forms
from django.contrib.auth.forms import UserChangeForm as DjangoUserChangeForm
from django.contrib.auth.forms import UserCreationForm as DjangoUserCreationForm
from django.core.exceptions import ValidationError

from ledger_core.models import Account, JournalLine, User

# -----------------------------
# Register custom admin forms
# ----------------------------


class UserAdminCreationForm(DjangoUserCreationForm):
    class Meta(DjangoUserCreationForm.Meta):
        model = User
        fields = ("username", "email", "default_company")


class UserAdminChangeForm(DjangoUserChangeForm):
    class Meta(DjangoUserChangeForm.Meta):
        model = User
        fields = (
            "username",
            "email",
            "is_active",
            "is_staff",
            "is_superuser",
            "default_company",
        )


# Inline form for JournalLine on a draft journal
class JournalLineInlineForm(forms.ModelForm):
    class Meta:
        model = JournalLine
        exclude = ("company",)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        journal = getattr(self.instance, "journal", None) if self.instance.journal_id else None
        if journal is not None and "account" in self.fields:
            self.fields["account"].queryset = Account.objects.for_company(journal.company)

    def clean(self):
        cleaned = super().clean()
        debit = cleaned.get("debit") or Decimal("0.00")
        credit = cleaned.get("credit") or Decimal("0.00")
        if debit == 0 and credit == 0:
            raise ValidationError("Either debit or credit must be > 0 for a journal line.")
        if debit > 0 and credit > 0:
            raise ValidationError("A journal line is either a debit or a credit.")
        # company is hidden on the form; the line inherits the journal's
        if self.instance.journal_id and not self.instance.company_id:
            self.instance.company_id = self.instance.journal.company_id
        return cleaned
