"""
Complaints Module
=================

Student complaint intake, AI classification and admin triage.

Follows Clean Architecture:
- Domain: entities, validation and access policy
- Application: use cases
- Infrastructure: database, LLM and change feed adapters
- Interfaces: API controllers
"""
