"""
Shared Kernel

Value objects, typed results, the clock, the unit of work and the message
bus used by the listings, bookings, promotions and rewards apps.
"""
