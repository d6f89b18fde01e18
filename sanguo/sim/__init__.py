"""
Headless simulation: full seeded campaigns without a UI, batch runs and reports.
"""
