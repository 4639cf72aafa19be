"""Promotions app package.

Admin and host coupon codes: eligibility rules live in
apps.promotions.domain.engine, the atomic redemption step in
apps.promotions.repositories.
"""
