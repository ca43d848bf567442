"""Calendars app package.

Google Calendar integration: stored owner credentials, the token provider,
the calendar gateway, open-slot discovery and the reconciler that folds
owner edits made in Google Calendar back into the booking table.
"""
