"""
Billing Kernel

Pure calculation and scheduling core for a small-business back office:
- Invoice line-item arithmetic (Decimal, unrounded)
- Recurrence descriptors for recurring work
- Period resolution (previous / current / next)
- Voucher and invoice number sequences with atomic issuance
"""

__version__ = "0.1.0"
