"""
Infrastructure Package
======================

Technical adapters shared by all modules: database, LLM gateway,
operator notifications and the change feed.
"""
