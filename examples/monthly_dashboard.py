"""Example: Monthly sales dashboard from in-memory rows

This example demonstrates how to build a full dashboard (totals, period
comparison, charts, alerts) and a CSV export from rows shaped like the data
API's responses.

Prerequisites:
- Install the package: pip install -e .
"""

import logging

from sales_core import AnalyticsConfig, Client, Instrument, Sale, build_dashboard
from sales_core.export import generate_csv
from sales_core.periods import date_range_from_preset

logging.basicConfig(level=logging.INFO)

today = "2024-02-10"  # MODIFY AS NEEDED

sale_rows = [
    {"id": "s1", "sale_price": 1000, "sale_date": "2024-01-15", "client_id": "c1", "instrument_id": "i1"},
    {"id": "s2", "sale_price": 1500, "sale_date": "2024-01-20", "client_id": "c2", "instrument_id": "i2"},
    {"id": "s3", "sale_price": -200, "sale_date": "2024-01-22", "client_id": "c1", "instrument_id": "i1",
     "notes": "Refund issued, strings damaged"},
    {"id": "s4", "sale_price": 800, "sale_date": "2023-12-15", "client_id": "c1"},
    {"id": "s5", "sale_price": 900, "sale_date": "2023-12-20", "client_id": "c2"},
]
sales = [Sale.from_dict(row) for row in sale_rows]
clients = [
    Client(id="c1", first_name="Ana", last_name="Lopez", email="ana@example.com"),
    Client(id="c2", email="bob@example.com"),
]
instruments = [
    Instrument(id="i1", maker="Stradivarius", type="Violin"),
    Instrument(id="i2", maker="Guarneri", type="Cello", subtype="4/4"),
]

period = date_range_from_preset("lastMonth", today)
result = build_dashboard(sales, clients, instruments, period=period, today=today, config=AnalyticsConfig())

print(f"Period: {result.period_label}")
print(f"Revenue: {result.totals.revenue:,.2f}  Refunds: {result.totals.refund:,.2f}")
if result.comparison is not None:
    growth = result.comparison.growth["revenue"]
    print(f"Revenue growth vs previous period: {growth:+.1f}%" if growth is not None else "No baseline")
    print(f"Primary driver: {result.comparison.decomposition.primary_driver}")

print("\nRevenue by instrument type:")
print(result.charts["type"])

print("\nAlerts:")
for alert in result.alerts:
    print(f"[{alert.severity}] {alert.title}: {alert.message}")

print("\nCSV export:")
print(generate_csv(result.sales))
