"""
Desk account roles.
"""

import enum


class UserRole(str, enum.Enum):
    # Superadmin: deletes documents and parties, resets data, manages accounts
    ADMIN = "ADMIN"
    # Counter staff: issues invoices, tickets, receipts and manual postings
    STAFF = "STAFF"
