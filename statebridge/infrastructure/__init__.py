"""
Infrastructure Module
=====================

Technical adapters for external systems (key-value storage, remote API).
"""
