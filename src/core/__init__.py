"""Core domain package for telecrm.

Core contains rule matching, the auto-reply gate, action choreography and the
outbound send queue without any Telegram or filesystem-specific code, keeping
the business logic portable.
"""
