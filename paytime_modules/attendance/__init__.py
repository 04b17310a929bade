"""Attendance module: punch exports in, weekly worked time out."""
