"""
Subscription state machine module.

Owns the single logical subscription to one instrument over one logical
connection. Handles Unsubscribed -> Subscribing -> Subscribed across
reconnects, instrument switches and the terminal kill signal.
"""
