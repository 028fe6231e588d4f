"""Firestore collection names."""

USERS = "users"
ISSUES = "issues"
ASSIGNMENTS = "assignments"
