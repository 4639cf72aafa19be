"""Bookings app package.

This app encapsulates the booking engine: availability checks, pricing,
promotion application and the booking state machine live in
apps.bookings.domain; the use cases that commit a booking under a listing
row lock live in apps.bookings.application. Date overlap is prevented by
serializing writers per listing inside a database transaction.
"""
