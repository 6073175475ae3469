from django.urls import path
from .views import low_stock_report, inventory_valuation, inventory_turnover, sales_summary

urlpatterns = [
    path('reports/low-stock/', low_stock_report, name='report-low-stock'),
    path('reports/inventory-valuation/', inventory_valuation, name='report-inventory-valuation'),
    path('reports/inventory-turnover/', inventory_turnover, name='report-inventory-turnover'),
    path('reports/sales-summary/', sales_summary, name='report-sales-summary'),
]
