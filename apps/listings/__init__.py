"""Listings app package.

Owns the listing catalogue as far as the booking engine needs it: capacity,
pet policy, nightly price and fees, booking mode, and the host-blocked
calendar periods. The engine reads listings as immutable snapshots.
"""
