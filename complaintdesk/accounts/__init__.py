"""
Accounts Module
===============

Bounded Context for user identity inside the service.

Responsibilities:
- Create a profile and default student role when an account registers
- Resolve the request-scoped Actor from a verified access token
- Profile read/update for owners and admins
"""
