"""Rewards app package.

Loyalty points ledger: reward actions, tiers, the append-only transaction
log and each user's cached balance.
"""
