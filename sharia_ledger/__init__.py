"""Sharia Ledger banking service."""
