"""Helpers shared by the bill and invoice services."""
from datetime import timedelta

from ..models import Currency


def replace_items(document, amounts, line_model, tax_model, line_extra=None):
    """
    Swap a draft document's line items and taxes for freshly priced ones.
    Never patched in place: old rows go, new rows come in.
    """
    fk = document._meta.model_name
    line_model.objects.filter(**{fk: document}).delete()
    tax_model.objects.filter(**{fk: document}).delete()

    line_model.objects.bulk_create(
        [
            line_model(
                **{fk: document},
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                amount=line.amount,
                sort_order=i,
                **(line_extra(line) if line_extra else {}),
            )
            for i, line in enumerate(amounts.lines)
        ]
    )
    tax_model.objects.bulk_create(
        [
            tax_model(
                **{fk: document},
                tax_name=tax.tax_name,
                tax_percentage=tax.tax_percentage,
                tax_amount=tax.tax_amount,
                is_withholding_tax=tax.is_withholding_tax,
            )
            for tax in amounts.taxes
        ]
    )


def resolve_currency(company, code):
    if code:
        return Currency.objects.get(pk=code)
    return company.default_currency


def default_due_date(document_date, terms_days):
    return document_date + timedelta(days=terms_days or 0)
