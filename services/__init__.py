"""
Services module - business logic layer for NEXOR.
"""
