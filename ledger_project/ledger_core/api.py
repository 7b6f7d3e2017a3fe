"""
Public ledger operations.

Every callable here takes the company explicitly and returns a
ServiceResult instead of raising for expected domain failures:

    result = api.create_journal(company, data, user=request.user)
    if not result.ok:
        ... result.error, result.code

The raising versions live in ledger_core.services.* and are what the rest
of the code base (admin actions, tasks, other services) calls.
"""
from .results import service_result
from .services import (
    accounts,
    audit_helper,
    balances,
    bills,
    duplicates,
    invoices,
    journals,
    payments,
    periods,
    posting,
    purchasing,
    reports,
)

# ---------- Account registry ----------
ensure_default_accounts = service_result(accounts.ensure_default_accounts)
get_chart_of_accounts = service_result(accounts.get_chart_of_accounts)
create_account = service_result(accounts.create_account)
update_account = service_result(accounts.update_account)
delete_account = service_result(accounts.delete_account)
get_account_activity = service_result(accounts.get_account_activity)

# ---------- Journals ----------
create_journal = service_result(journals.create_journal)
post_journal = service_result(journals.post_journal)
update_journal = service_result(journals.update_journal)
delete_journal = service_result(journals.delete_journal)
void_journal = service_result(journals.void_journal)
get_journal = service_result(journals.get_journal)
list_journals = service_result(journals.list_journals)

# ---------- Periods ----------
create_period = service_result(periods.create_period)
update_period_status = service_result(periods.update_period_status)
list_periods = service_result(periods.list_periods)

# ---------- Balances ----------
recalculate_account_balance = service_result(balances.recalculate_account_balance)
recalculate_all_balances = service_result(balances.recalculate_all_balances)

# ---------- Reports ----------
trial_balance = service_result(reports.trial_balance)
income_statement = service_result(reports.income_statement)
balance_sheet = service_result(reports.balance_sheet)
payables_aging = service_result(reports.payables_aging)

# ---------- Bills ----------
create_bill = service_result(bills.create_bill)
get_bill = service_result(bills.get_bill)
update_bill = service_result(bills.update_bill)
delete_bill = service_result(bills.delete_bill)
approve_bill = service_result(bills.approve_bill)
update_bill_status = service_result(bills.update_bill_status)
post_bill_to_gl = service_result(bills.post_bill_to_gl)
get_bill_gl_status = service_result(bills.get_bill_gl_status)
check_for_duplicate_bill = service_result(duplicates.check_for_duplicate_bill)

# ---------- Invoices ----------
create_invoice = service_result(invoices.create_invoice)
get_invoice = service_result(invoices.get_invoice)
update_invoice = service_result(invoices.update_invoice)
delete_invoice = service_result(invoices.delete_invoice)
update_invoice_status = service_result(invoices.update_invoice_status)
send_invoice = service_result(invoices.send_invoice)
remind_invoice = service_result(invoices.remind_invoice)
post_invoice_to_gl = service_result(invoices.post_invoice_to_gl)
get_invoice_gl_status = service_result(invoices.get_invoice_gl_status)

# ---------- Payments ----------
record_bill_payment = service_result(payments.record_bill_payment)
update_bill_payment = service_result(payments.update_bill_payment)
delete_bill_payment = service_result(payments.delete_bill_payment)
record_invoice_payment = service_result(payments.record_invoice_payment)
update_invoice_payment = service_result(payments.update_invoice_payment)
delete_invoice_payment = service_result(payments.delete_invoice_payment)

# ---------- Purchasing ----------
create_vendor = service_result(purchasing.create_vendor)
create_purchase_order = service_result(purchasing.create_purchase_order)
update_purchase_order_status = service_result(purchasing.update_purchase_order_status)

# ---------- GL retry sweep ----------
post_pending_documents = service_result(posting.post_pending_documents)

# ---------- Activity log ----------
get_activity_log = service_result(audit_helper.get_activity_log)
