"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Accounts and Complaints).

Architecture Pattern: Modular Monolith
- Each module (accounts, complaints) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from Accounts or Complaints to shared kernel.
"""
