"""
Accounts app - Tenants and users for the ledger.

This app provides:
- Company: Tenant model; every ledger record is scoped to one
- User: Custom user model with a global role
- CompanyMembership: User-Company relationship with a company role
- effective_permission: Pure role/permission lookup (accounts.permissions)
"""
