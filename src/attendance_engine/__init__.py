"""Attendance rule engine package.

Feature modules (policy, buffer, holidays, punches, attendance, users) each
carry their model, a repository Protocol, a MySQL repository and a service,
with a thin Flask controller layer on top.
"""
