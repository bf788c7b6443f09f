"""Timekeeper package.

Tracks an employee's daily work session (clock-in/out, lunch and short
breaks), derives net worked hours and weekly/monthly reports, and runs the
eye-care and forgot-to-clock-out reminders. Organized by feature modules
(entries, hours, tracking, reports, reminders) with a thin Flask controller
layer over service/repository layers.
"""
