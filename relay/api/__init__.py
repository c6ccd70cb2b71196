"""Relay API adapter package.

Architectural role:
- Defines the external interaction boundary (Telegram webhook HTTP endpoint
  and the command-line entrypoint).
- Performs transport-level validation and response shaping.
- Delegates relay work to `relay.core.pipeline`.
"""
