# accounts/__init__.py
"""
Accounts app - Authentication and church membership.

This app provides:
- Church: The organization every ledger row belongs to
- User: Custom user model with active_church
- Membership: User-Church relationship carrying the role
- Department: Department tree that budgets are drawn up for
- ActorContext: Authorization context utilities

Church scoping is enforced at every layer through the ActorContext pattern.
"""
