"""Data models for the Speaker Role bot."""
