"""Civic Issues API - citizen issue reporting, triage, assignment and analytics."""
