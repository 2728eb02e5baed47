"""Reminder delivery: visibility, delivery marking and read/dismiss/snooze transitions.

Reminders are produced upstream (task due-date logic); this package owns what
happens to them once they exist.
"""
