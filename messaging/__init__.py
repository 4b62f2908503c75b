"""Messaging app initialization.

Private messages between marketplace users, optionally about a listing,
with mailbox folders and a per-counterpart conversation view.
"""
