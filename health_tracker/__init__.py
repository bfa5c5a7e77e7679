"""Local data store and derived analytics for a personal health dashboard.

The package keeps per-user heart-rate readings, medication regimens and
emergency contacts in a local store and computes the views the dashboard
renders from them. Analytics are pure functions over fresh snapshots.
"""
