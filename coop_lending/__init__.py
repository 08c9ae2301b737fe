"""
Cooperative Lending Core

Loan amortization, repayment allocation, penalty accrual and payment reversal
for a cooperative back office. All monetary values are integer centavos.
"""

__version__ = "1.0.0"
