"""Gophermart loyalty points ledger."""
