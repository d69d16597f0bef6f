"""Applicant document uploads."""
