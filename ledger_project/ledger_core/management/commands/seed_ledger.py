import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from ledger_core.models import Company, Currency, Customer, EntityMembership
from ledger_core.services import accounts, bills, invoices, purchasing

User = get_user_model()


class Command(BaseCommand):
    help = "Create a company (if missing) and seed its default chart of accounts."

    def add_arguments(self, parser):
        parser.add_argument("slug", help="Company slug, e.g. acme")
        parser.add_argument("--name", help="Company name (defaults to the slug)")
        parser.add_argument("--currency", default="USD", help="Default currency code")
        parser.add_argument("--username", help="Owner user to create / attach")
        parser.add_argument("--password", default="demo123", help="Password of a new owner")
        parser.add_argument(
            "--demo",
            action="store_true",
            help="Also create a vendor, a customer, an approved bill and a sent invoice.",
        )

    def handle(self, *args, **options):
        slug = options["slug"]
        with transaction.atomic():
            currency, _ = Currency.objects.get_or_create(
                code=options["currency"].upper(),
                defaults={"name": options["currency"].upper()},
            )
            company, created = Company.objects.get_or_create(
                slug=slug,
                defaults={"name": options["name"] or slug, "default_currency": currency},
            )
            self.stdout.write(
                self.style.SUCCESS(f"{'Created' if created else 'Found'} company: {company}")
            )

            user = None
            if options["username"]:
                user = self._owner(company, options["username"], options["password"])

            seeded = accounts.ensure_default_accounts(company)
            self.stdout.write(self.style.SUCCESS(f"Seeded {seeded} default account(s)"))

        if options["demo"]:
            self._demo_documents(company, user)

    def _owner(self, company, username, password):
        user, created = User.objects.get_or_create(
            username=username, defaults={"email": f"{username}@example.com"}
        )
        if created:
            user.set_password(password)
            user.save()
        EntityMembership.objects.get_or_create(
            user=user, company=company, defaults={"role": "owner"}
        )
        if user.default_company_id is None:
            user.default_company = company
            user.save(update_fields=["default_company"])
        if company.owner_id is None:
            company.owner = user
            company.save(update_fields=["owner"])
        self.stdout.write(self.style.SUCCESS(f"Owner: {user.username}"))
        return user

    def _demo_documents(self, company, user):
        today = datetime.date.today()
        vendor = purchasing.create_vendor(company, {"name": "Demo Supplies"}, user)
        customer, _ = Customer.objects.get_or_create(
            company=company, name="Demo Customer", defaults={"email": "billing@example.com"}
        )

        bill_outcome = bills.create_bill(
            company,
            {
                "vendor_id": vendor.pk,
                "vendor_invoice_number": f"DS-{today:%Y%m%d}",
                "bill_date": today,
                "status": "approved",
                "lines": [{"description": "Office paper", "quantity": 2, "unit_price": Decimal("100")}],
            },
            user,
        )
        invoice = invoices.create_invoice(
            company,
            {
                "customer_id": customer.pk,
                "invoice_date": today,
                "lines": [{"description": "Consulting", "quantity": 5, "unit_price": Decimal("150")}],
                "taxes": [{"tax_name": "VAT", "tax_percentage": Decimal("7.5")}],
            },
            user,
        )
        send_outcome = invoices.send_invoice(company, invoice.pk, user)

        for warning in bill_outcome.warnings + send_outcome.warnings:
            self.stdout.write(self.style.WARNING(warning))
        self.stdout.write(
            self.style.SUCCESS(
                f"Demo bill {bill_outcome.value['bill'].bill_number} and "
                f"invoice {invoice.invoice_number} created"
            )
        )
