"""Notifications app package.

Subscribes to the booking engine's domain events and tells guests about
them: an email and an in-app notification per event. Delivery is best
effort and never affects the committed booking or ledger entry.
"""
