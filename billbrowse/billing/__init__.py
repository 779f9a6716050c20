"""Billing domain: customers, plans, credit systems and built-in actions."""
