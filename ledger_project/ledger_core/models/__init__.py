from .account import Account
from .auditlog import ActivityLog
from .bill import Bill, BillLineItem, BillPayment, BillTax
from .currency import Currency
from .customer import Customer
from .entitymembership import Company, EntityMembership, User
from .invoice import Invoice, InvoiceLineItem, InvoicePayment, InvoiceTax
from .journal import JournalEntry, JournalLine
from .period import Period
from .purchase_order import PurchaseOrder, PurchaseOrderLine
from .sequence import SequenceCounter
from .vendor import Vendor
