"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- ledger: Ledger store, withdrawals and balance reads
- orders: Order submission and accrual reconciliation
- users: Registration, authentication and session tokens
- external: Accrual system API client
"""
