"""Telegram Bot API adapter package.

Module split:
    - `models`: pydantic schemas for the webhook update payload.
    - `client`: async Bot API transport (messages, photos, chat actions).
"""
