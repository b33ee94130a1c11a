"""Workflow services for the Speaker Role bot."""
