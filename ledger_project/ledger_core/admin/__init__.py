from .account import AccountAdmin, CurrencyAdmin
from .actions import (
    approve_bills,
    post_bills_to_gl,
    post_invoices_to_gl,
    post_journal_entries,
    post_pending_documents,
    recalculate_balances,
    send_invoices,
    void_journal_entries,
)
from .auditlog import ActivityLogAdmin
from .bill import BillAdmin, PurchaseOrderAdmin, VendorAdmin
from .forms import JournalLineInlineForm, UserAdminChangeForm, UserAdminCreationForm
from .inlines import (
    BillLineItemInline,
    BillPaymentInline,
    BillTaxInline,
    InvoiceLineItemInline,
    InvoicePaymentInline,
    InvoiceTaxInline,
    JournalLineInline,
)
from .invoice import CustomerAdmin, InvoiceAdmin
from .journal import JournalEntryAdmin
from .membership import CompanyAdmin, EntityMembershipAdmin, UserAdmin
from .mixins import TenantAdminMixin
from .period import PeriodAdmin
