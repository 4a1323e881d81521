# accounting/__init__.py
"""
Accounting app - the church ledger.

This app provides:
- AccountCode: Hierarchical chart of accounts (codes like 5-01-02)
- Transaction: One debit/credit pair per posting
- Account ledgers, the trial balance and the general ledger, all derived
  from transactions at read time

Commands handle all mutations; queries and journal handle reads.
"""
