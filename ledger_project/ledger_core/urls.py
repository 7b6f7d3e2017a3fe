from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    path("accounts/", views.accounts_view, name="accounts"),
    path("accounts/<int:account_id>/", views.account_detail_view, name="account-detail"),
    path("journals/", views.journals_view, name="journals"),
    path("journals/<int:journal_id>/", views.journal_detail_view, name="journal-detail"),
    path("journals/<int:journal_id>/post/", views.journal_post_view, name="journal-post"),
    path("journals/<int:journal_id>/void/", views.journal_void_view, name="journal-void"),
    path("periods/", views.periods_view, name="periods"),
    path("periods/<int:period_id>/status/", views.period_status_view, name="period-status"),
    path("bills/", views.bills_view, name="bills"),
    path("bills/duplicate-check/", views.bill_duplicate_check_view, name="bill-duplicate-check"),
    path("bills/<int:bill_id>/", views.bill_detail_view, name="bill-detail"),
    path("bills/<int:bill_id>/approve/", views.bill_approve_view, name="bill-approve"),
    path("bills/<int:bill_id>/status/", views.bill_status_view, name="bill-status"),
    path("bills/<int:bill_id>/gl/", views.bill_gl_view, name="bill-gl"),
    path("bills/<int:bill_id>/payments/", views.bill_payments_view, name="bill-payments"),
    path("bill-payments/<int:payment_id>/", views.bill_payment_detail_view, name="bill-payment-detail"),
    path("invoices/", views.invoices_view, name="invoices"),
    path("invoices/<int:invoice_id>/", views.invoice_detail_view, name="invoice-detail"),
    path("invoices/<int:invoice_id>/status/", views.invoice_status_view, name="invoice-status"),
    path("invoices/<int:invoice_id>/send/", views.invoice_send_view, name="invoice-send"),
    path("invoices/<int:invoice_id>/remind/", views.invoice_remind_view, name="invoice-remind"),
    path("invoices/<int:invoice_id>/gl/", views.invoice_gl_view, name="invoice-gl"),
    path("invoices/<int:invoice_id>/payments/", views.invoice_payments_view, name="invoice-payments"),
    path(
        "invoice-payments/<int:payment_id>/",
        views.invoice_payment_detail_view,
        name="invoice-payment-detail",
    ),
    path("reports/trial-balance/", views.trial_balance_view, name="trial-balance"),
    path("reports/income-statement/", views.income_statement_view, name="income-statement"),
    path("reports/balance-sheet/", views.balance_sheet_view, name="balance-sheet"),
    path("reports/payables-aging/", views.payables_aging_view, name="payables-aging"),
    path("activity/", views.activity_view, name="activity"),
]
