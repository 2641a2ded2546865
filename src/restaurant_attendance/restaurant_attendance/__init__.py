"""Restaurant attendance package.

Feature modules (devices, ingest, attendance, timesheet, ...) each carry a
model, a repository interface with its MySQL implementation, a service layer
and a thin Flask controller.
"""
