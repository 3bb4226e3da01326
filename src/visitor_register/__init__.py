"""Visitor Register package.

Feature modules (visits, roster, retention) with a thin Flask controller
layer over service and repository layers; one persistence gateway owns the
MySQL connection pool.
"""
