"""Timesheet & project costing package.

Organized by feature modules (overtime, timesheets, costing, ...) with a thin
Flask controller layer on top of service/repository layers.
"""
