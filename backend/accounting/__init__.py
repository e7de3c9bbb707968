"""
Accounting app - Double-entry ledger engine.

This app provides:
- Account: Chart of Accounts with type/sub-type taxonomy and hierarchy
- JournalEntry / JournalLine: Double-entry bookkeeping entries
- policies: Account and journal entry validation
- commands: The write path (all mutations go through here)
- balances: Trial balance aggregation
- statements: Profit & Loss and Balance Sheet
"""
