"""Relay orchestration package.

Composition:
    - `pipeline`: prompt extraction, provider flows, and reply delivery.
"""
