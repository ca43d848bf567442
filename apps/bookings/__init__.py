"""Bookings app package.

Reservations of chalets and guides: the booking model, the availability
resolver that consults both the booking table and the resource's Google
Calendar, the transaction manager that writes bookings under a resource
lock, and the tasks that mirror bookings into Google Calendar after commit.
"""
